"""Small helpers for Shopify identifiers and text normalisation."""

from datetime import datetime, timezone
from typing import Iterable, List, Optional, Union


def to_product_gid(product_id: Union[str, int, None]) -> Optional[str]:
    """Normalise a numeric id or GID into ``gid://shopify/Product/N``."""
    return to_gid("Product", product_id)


def to_gid(resource: str, value: Union[str, int, None]) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if text.startswith("gid://"):
        return text
    return f"gid://shopify/{resource}/{text}"


def numeric_id(gid: Union[str, int, None]) -> Optional[str]:
    if gid is None:
        return None
    text = str(gid).strip()
    return text.rsplit("/", 1)[-1] or None


def normalize_keyword(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def variant_slug(option_value: Optional[str]) -> str:
    """Slug used to match variants: "Near Mint" -> "near-mint"."""
    if not option_value:
        return "default-title"
    return option_value.lower().replace(" ", "-", 1)


def chunked(items: Iterable, size: int) -> List[list]:
    items = list(items)
    return [items[i:i + size] for i in range(0, len(items), size)]


def parse_list_input(value: Optional[str]) -> List[str]:
    """Split comma or newline separated form input, dropping blanks."""
    if not value:
        return []
    parts = value.replace("\r", "\n").replace(",", "\n").split("\n")
    return [part.strip() for part in parts if part.strip()]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes read back from SQLite."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
