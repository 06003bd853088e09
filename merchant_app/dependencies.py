from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import Depends, Header, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from merchant_app.core.config import get_settings
from merchant_app.database import async_session
from merchant_app.services.session_resolver import SessionResolver
from merchant_app.services.shopify.client import ShopifyAdminClient


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions."""
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()


def get_shop_domain(
    shop: Optional[str] = Query(None),
    x_shopify_shop_domain: Optional[str] = Header(None),
) -> str:
    """Resolve the shop an admin request acts on (query, header, then DEFAULT_SHOP)."""
    return shop or x_shopify_shop_domain or get_settings().DEFAULT_SHOP


async def get_shopify_client(
    shop: str = Depends(get_shop_domain),
    db: AsyncSession = Depends(get_db),
) -> ShopifyAdminClient:
    """Admin API client for the resolved shop's stored offline session."""
    return await SessionResolver(db).client_for(shop)


async def read_body(request: Request) -> Dict[str, Any]:
    """Accept both JSON and form posts from the admin UI"""
    content_type = request.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            body = await request.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}
    form = await request.form()
    return dict(form)
