# tests/conftest.py
import base64
import os

# Settings are read once at import time, so the test environment goes first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENV_FILE"] = os.devnull
os.environ["SHOPIFY_API_SECRET"] = "test_secret"
os.environ["BASIC_AUTH_USERNAME"] = "admin"
os.environ["BASIC_AUTH_PASSWORD"] = "test_pass"
os.environ["ADMIN_MAINTENANCE_SECRET"] = "purge_secret"
os.environ["DEFAULT_SHOP"] = "test-shop.myshopify.com"
os.environ["INVENTORY_SCHEDULE_ENABLED"] = "false"
os.environ["JOB_WORKER_ENABLED"] = "false"

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock

from merchant_app import models  # noqa: F401
from merchant_app.core.config import Settings
from merchant_app.database import Base, async_session, engine
from merchant_app.dependencies import get_db
from merchant_app.main import app
from merchant_app.models.session import ShopSession

TEST_SHOP = "test-shop.myshopify.com"


@pytest.fixture
def settings():
    """Provide isolated test settings"""
    return Settings(
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        SHOPIFY_API_SECRET="test_secret",
        DEFAULT_SHOP=TEST_SHOP,
        SMTP_HOST="smtp.test.local",
        SMTP_USERNAME="mailer",
        SMTP_PASSWORD="mailer_pass",
        SMTP_FROM_EMAIL="shop@test.local",
        STORE_NAME="Test Cards",
        PRODUCT_LINK="https://test-shop.example/products",
        INVENTORY_SCHEDULE_ENABLED=False,
        JOB_WORKER_ENABLED=False,
    )


@pytest.fixture(scope="function")
async def test_engine():
    """Create the tables for each test function and drop them afterwards"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def db_session(test_engine):
    """Provide a database session for tests"""
    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def shop_session(db_session):
    """A stored offline session for TEST_SHOP"""
    session = ShopSession(
        id=f"offline_{TEST_SHOP}",
        shop=TEST_SHOP,
        state="offline",
        is_online=False,
        scope="read_products,write_products",
        expires=None,
        access_token="shpat_test_token",
    )
    db_session.add(session)
    await db_session.commit()
    return session


@pytest.fixture
async def api_client(db_session):
    """
    Async client against the app without running its lifespan, so neither
    the scheduler nor the job worker starts.
    """
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    token = base64.b64encode(b"admin:test_pass").decode()
    return {"Authorization": f"Basic {token}"}


@pytest.fixture
def mock_shopify_client():
    """Provide a mocked ShopifyAdminClient"""
    client = MagicMock()
    client.shop = TEST_SHOP
    for name in (
        "get_shop",
        "get_primary_location_id",
        "get_product",
        "find_product_id_for_inventory_item",
        "get_products_page",
        "list_webhook_subscriptions",
        "get_collection_id_by_handle",
        "set_product_status",
        "publish_to_all",
        "add_to_collection_front",
        "create_product_with_media",
        "create_bulk_variants",
        "update_variant_prices",
        "set_inventory_quantity",
        "update_variant_rest",
        "update_inventory_item_rest",
    ):
        setattr(client, name, AsyncMock())
    client.get_primary_location_id.return_value = "gid://shopify/Location/1"
    return client


@pytest.fixture
def inventory_items():
    """Factory for a fake iter_inventory_items async generator"""
    def _factory(*items):
        async def _iter(location_id):
            for item in items:
                yield item
        return _iter
    return _factory


@pytest.fixture
def shopify_product():
    """Factory for a Shopify product payload as returned by get_product"""
    return _shopify_product


def _shopify_product(product_id="gid://shopify/Product/1", title="Charizard Holo", status="ACTIVE",
                    total=0, condition_option=False):
    option = {"name": "Condition", "value": "Near Mint"} if condition_option else {"name": "Title", "value": "Default Title"}
    return {
        "id": product_id,
        "title": title,
        "status": status,
        "totalInventory": total,
        "variants": {"nodes": [{
            "id": "gid://shopify/ProductVariant/11",
            "selectedOptions": [option],
            "inventoryItem": {
                "id": "gid://shopify/InventoryItem/21",
                "inventoryLevels": {"nodes": [{
                    "location": {"id": "gid://shopify/Location/1"},
                    "quantities": [{"name": "available", "quantity": total}],
                }]},
            },
        }]},
    }
