"""Look up persisted offline Shopify sessions by shop domain."""

import logging
from typing import List, Optional

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from merchant_app.core.exceptions import SessionNotFoundError
from merchant_app.core.utils import utcnow
from merchant_app.models.session import ShopSession
from merchant_app.services.shopify.client import ShopifyAdminClient

logger = logging.getLogger(__name__)


def _usable():
    return or_(ShopSession.expires.is_(None), ShopSession.expires > utcnow())


class SessionResolver:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def resolve(self, shop: str) -> Optional[ShopSession]:
        """Most recent non-expired (or never-expiring) session for ``shop``."""
        if not shop:
            return None
        stmt = (
            select(ShopSession)
            .where(ShopSession.shop == shop, _usable())
            .order_by(ShopSession.expires.desc().nulls_first(), ShopSession.id.desc())
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def client_for(self, shop: str) -> ShopifyAdminClient:
        session = await self.resolve(shop)
        if session is None:
            raise SessionNotFoundError(f"No active session found for shop {shop}")
        return ShopifyAdminClient.from_session(session)

    async def list_shops(self) -> List[str]:
        stmt = select(ShopSession.shop).where(_usable()).distinct().order_by(ShopSession.shop)
        result = await self.db.execute(stmt)
        return [row for row in result.scalars().all() if row]

    async def purge(self, shop: str) -> int:
        result = await self.db.execute(delete(ShopSession).where(ShopSession.shop == shop))
        await self.db.commit()
        logger.info("Purged %s session(s) for %s", result.rowcount, shop)
        return result.rowcount or 0
