# merchant_app/core/config.py

import os
from functools import lru_cache
from typing import Dict, List, Optional
from pydantic import ConfigDict
from pydantic_settings import BaseSettings


def _parse_csv_list(value):
    if value in (None, "", []):
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, (list, tuple, set)):
        return [str(item).strip() for item in value if str(item).strip()]
    return []


def _parse_mapping(value):
    """Parse ``shop=value,shop2=value2`` pairs into a dict."""
    if value in (None, "", {}):
        return {}
    if isinstance(value, dict):
        return {str(k).strip(): str(v).strip() for k, v in value.items()}
    mapping = {}
    for pair in str(value).split(","):
        if "=" not in pair:
            continue
        key, _, val = pair.partition("=")
        if key.strip() and val.strip():
            mapping[key.strip()] = val.strip()
    return mapping


class Settings(BaseSettings):
    """
    Application settings.
    Loads values from environment variables (.env file)
    """
    # Database settings
    DATABASE_URL: str = ""

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    APP_URL: str = ""

    # Shopify app
    SHOPIFY_API_KEY: Optional[str] = None
    SHOPIFY_API_SECRET: str = ""
    SHOPIFY_API_VERSION: str = "2025-01"
    DEFAULT_SHOP: str = ""

    # Inventory automation
    # Comma separated product ids or GIDs that never get drafted
    PRODUCT_STATUS_BYPASS_IDS: str = ""
    NEW_ARRIVALS_COLLECTION_ID: Optional[str] = None
    NEW_ARRIVALS_COLLECTION_HANDLE: str = "new-arrivals"
    # shop.myshopify.com=gid://shopify/Collection/N pairs
    SHOP_COLLECTION_OVERRIDES: str = ""
    STORE_VALUE_NOTIFY_EMAIL: str = ""

    # Scheduler / job worker
    INVENTORY_SCHEDULE_ENABLED: bool = True
    INVENTORY_CHECK_INTERVAL_MINUTES: int = 60
    JOB_WORKER_ENABLED: bool = True
    JOB_WORKER_POLL_INTERVAL: float = 5.0

    # Storefront
    STORE_NAME: str = "Card Shop"
    PRODUCT_LINK: str = ""
    WISHLIST_CORS_ORIGIN: str = "https://extensions.shopifycdn.com"

    # SMTP / Email
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = True
    SMTP_USE_SSL: bool = False
    SMTP_TIMEOUT: int = 30
    SMTP_FROM_EMAIL: Optional[str] = None
    SMTP_FROM_NAME: Optional[str] = None

    # Headless browser / scraping
    SELENIUM_GRID_URL: str = ""
    PSA_BYPASS_COOKIE_NAME: str = "cf_clearance"
    PSA_BYPASS_COOKIE_VALUE: str = ""
    PSA_BYPASS_COOKIE_DOMAIN: str = ".psacard.com"
    SCRAPER_USER_AGENT: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    )

    # Image pipeline
    REMOVE_BG_API_KEY: str = ""
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_KEY: str = ""
    SUPABASE_BUCKET: str = "images"

    # Basic Auth
    BASIC_AUTH_USERNAME: Optional[str] = None
    BASIC_AUTH_PASSWORD: Optional[str] = None
    ADMIN_MAINTENANCE_SECRET: str = ""

    model_config = ConfigDict(
        env_file=os.getenv("ENV_FILE", ".env"),
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def bypass_product_ids(self) -> set:
        """Bypass list expanded to raw value, product GID and numeric id."""
        ids = set()
        for raw in _parse_csv_list(self.PRODUCT_STATUS_BYPASS_IDS):
            ids.add(raw)
            numeric = raw.rsplit("/", 1)[-1]
            if numeric.isdigit():
                ids.add(numeric)
                ids.add(f"gid://shopify/Product/{numeric}")
        return ids

    @property
    def collection_overrides(self) -> Dict[str, str]:
        return _parse_mapping(self.SHOP_COLLECTION_OVERRIDES)


@lru_cache()
def get_settings() -> Settings:
    return Settings()
