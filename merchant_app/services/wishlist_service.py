"""Customer wishlist storage backing the storefront extension."""

import logging
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from merchant_app.core.utils import normalize_keyword
from merchant_app.models.wishlist import Keyword, SuggestedKeyword, Wishlist

logger = logging.getLogger(__name__)


class WishlistService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, customer_id: str) -> Optional[Wishlist]:
        result = await self.db.execute(select(Wishlist).where(Wishlist.customer_id == customer_id))
        return result.scalars().first()

    async def get_or_create(self, customer_id: str) -> Wishlist:
        wishlist = await self.get(customer_id)
        if wishlist is not None:
            return wishlist

        wishlist = Wishlist(customer_id=customer_id, email=None, keywords=[])
        self.db.add(wishlist)
        await self.db.commit()
        logger.info("Created wishlist for customer %s", customer_id)
        return wishlist

    async def suggested_keywords(self) -> List[str]:
        result = await self.db.execute(select(SuggestedKeyword).order_by(SuggestedKeyword.created_at.asc()))
        return [row.value for row in result.scalars().all()]

    async def _get_or_create_keyword(self, value: str) -> Keyword:
        result = await self.db.execute(select(Keyword).where(Keyword.value == value))
        keyword = result.scalars().first()
        if keyword is None:
            keyword = Keyword(value=value)
            self.db.add(keyword)
            await self.db.flush()
        return keyword

    async def add_keyword(self, wishlist: Wishlist, raw_keyword: str) -> Wishlist:
        value = normalize_keyword(raw_keyword)
        if not value:
            return wishlist
        if any(k.value == value for k in wishlist.keywords):
            return wishlist
        keyword = await self._get_or_create_keyword(value)
        wishlist.keywords.append(keyword)
        await self.db.commit()
        return wishlist

    async def remove_keyword(self, wishlist: Wishlist, raw_keyword: str) -> Wishlist:
        value = normalize_keyword(raw_keyword)
        remaining = [k for k in wishlist.keywords if k.value != value]
        if len(remaining) != len(wishlist.keywords):
            wishlist.keywords = remaining
            await self.db.commit()
        return wishlist

    async def set_email(self, wishlist: Wishlist, email: Optional[str]) -> Wishlist:
        wishlist.email = email.strip() if email else None
        await self.db.commit()
        return wishlist

    async def to_response(self, wishlist: Wishlist) -> Dict:
        return {
            "keywords": [k.value for k in wishlist.keywords],
            "email": wishlist.email,
            "suggestedKeywords": await self.suggested_keywords(),
        }
