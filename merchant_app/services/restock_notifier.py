"""Back-in-stock emails for wishlist subscribers, throttled per product."""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from merchant_app.core.utils import as_utc, utcnow
from merchant_app.models.email_sent import EmailSent
from merchant_app.models.wishlist import Keyword
from merchant_app.services.email_service import EmailService

logger = logging.getLogger(__name__)

RESEND_COOLDOWN = timedelta(hours=24)


class RestockNotifier:
    def __init__(self, db: AsyncSession, email_service: EmailService):
        self.db = db
        self.email_service = email_service

    async def find_recipients(self, product_name: str) -> List[str]:
        """Emails of wishlists holding a keyword contained in ``product_name``."""
        name = (product_name or "").lower()
        if not name:
            return []

        result = await self.db.execute(select(Keyword))
        emails: List[str] = []
        for keyword in result.scalars().all():
            if not keyword.value or keyword.value not in name:
                continue
            for wishlist in keyword.wishlists:
                if wishlist.email and wishlist.email not in emails:
                    emails.append(wishlist.email)
        return emails

    async def was_recently_sent(self, product_id: str, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        record = await self.db.get(EmailSent, product_id)
        if record is None:
            return False
        return as_utc(record.last_sent) > now - RESEND_COOLDOWN

    async def mark_sent(self, product_id: str, now: Optional[datetime] = None) -> None:
        now = now or utcnow()
        record = await self.db.get(EmailSent, product_id)
        if record is None:
            self.db.add(EmailSent(id=product_id, last_sent=now))
        else:
            record.last_sent = now
        await self.db.commit()

    async def notify(
        self,
        *,
        product_id: str,
        product_name: str,
        quantity: int,
        bypass: bool = False,
    ) -> Dict[str, Any]:
        """
        Email every matching subscriber that ``product_name`` is back.

        Skipped when the product was emailed in the last 24 hours, unless
        ``bypass`` is set. Needs at least one recipient and a positive
        quantity (quantity is ignored when bypassing).
        """
        if not bypass and await self.was_recently_sent(product_id):
            logger.info("Restock email for %s already sent within 24h; skipping", product_id)
            return {"status": "SKIPPED", "reason": "Email already sent in the last 24 hours"}

        recipients = await self.find_recipients(product_name)
        if not recipients or (quantity <= 0 and not bypass):
            return {"status": "FAILED", "error": "Item quantity or email length == 0"}

        batches = await self.email_service.send_restock_email(product_name=product_name, recipients=recipients)
        if batches == 0:
            return {"status": "FAILED", "error": "Email could not be sent"}

        await self.mark_sent(product_id)
        logger.info("Restock email for %s sent to %s recipient(s) in %s batch(es)", product_id, len(recipients), batches)
        return {"status": "SENT", "recipients": len(recipients), "batches": batches}
