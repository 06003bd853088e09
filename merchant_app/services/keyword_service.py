"""
Suggested keywords offered by the storefront extension, and the keyword
statistics shown in the merchant admin.
"""

import logging
from typing import Any, Dict, Iterable, List

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from merchant_app.core.exceptions import ValidationError
from merchant_app.core.utils import normalize_keyword
from merchant_app.models.wishlist import Keyword, SuggestedKeyword, Wishlist, wishlist_keywords

logger = logging.getLogger(__name__)

ADMIN_SOURCE = "admin"


class SuggestedKeywordService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_all(self) -> List[SuggestedKeyword]:
        stmt = select(SuggestedKeyword).order_by(SuggestedKeyword.created_at.desc(), SuggestedKeyword.id.desc())
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def add(self, raw_value: str, source: str = ADMIN_SOURCE) -> SuggestedKeyword:
        """Store a trimmed, lowercased suggestion. Empty and duplicate values raise ValidationError."""
        value = normalize_keyword(raw_value)
        if not value:
            raise ValidationError("Keyword cannot be empty")

        existing = await self.db.execute(select(SuggestedKeyword.id).where(SuggestedKeyword.value == value))
        if existing.first() is not None:
            raise ValidationError("This keyword already exists")

        keyword = SuggestedKeyword(value=value, source=source)
        self.db.add(keyword)
        await self.db.commit()
        logger.info("Added suggested keyword %r (%s)", value, source)
        return keyword

    async def delete(self, keyword_id: int) -> bool:
        keyword = await self.db.get(SuggestedKeyword, keyword_id)
        if keyword is None:
            return False
        await self.db.delete(keyword)
        await self.db.commit()
        logger.info("Deleted suggested keyword %r", keyword.value)
        return True

    async def bulk_delete(self, keyword_ids: Iterable[int]) -> int:
        ids = list(keyword_ids)
        if not ids:
            return 0
        result = await self.db.execute(delete(SuggestedKeyword).where(SuggestedKeyword.id.in_(ids)))
        await self.db.commit()
        logger.info("Deleted %s suggested keyword(s)", result.rowcount)
        return result.rowcount

    async def stats(self) -> Dict[str, Any]:
        """
        Per-keyword count of wishlists that have an email (most subscribed
        first), the suggested keywords, and the number of subscribed emails.
        """
        subscribers = func.count(Wishlist.id)
        stmt = (
            select(Keyword.id, Keyword.value, subscribers.label("subscribers"))
            .select_from(Keyword)
            .outerjoin(wishlist_keywords, wishlist_keywords.c.keyword_id == Keyword.id)
            .outerjoin(
                Wishlist,
                (Wishlist.id == wishlist_keywords.c.wishlist_id) & Wishlist.email.is_not(None),
            )
            .group_by(Keyword.id, Keyword.value)
            .order_by(subscribers.desc(), Keyword.value.asc())
        )
        rows = (await self.db.execute(stmt)).all()

        total_emails = await self.db.scalar(
            select(func.count()).select_from(Wishlist).where(Wishlist.email.is_not(None))
        )
        return {
            "keywords": [{"id": row.id, "value": row.value, "subscribers": row.subscribers} for row in rows],
            "suggestedKeywords": [keyword.value for keyword in await self.list_all()],
            "totalEmails": total_emails or 0,
        }
