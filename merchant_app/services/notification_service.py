"""In-app notification log shown as toasts in the merchant admin."""

import logging
from datetime import datetime, time, timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from merchant_app.core.enums import NotificationType
from merchant_app.core.utils import utcnow
from merchant_app.models.notification import NotificationResult

logger = logging.getLogger(__name__)


def start_of_today(now: Optional[datetime] = None) -> datetime:
    now = now or utcnow()
    return datetime.combine(now.date(), time.min, tzinfo=timezone.utc)


class NotificationService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(
        self,
        title: str,
        type: NotificationType,
        length: int = 3000,
    ) -> NotificationResult:
        notification = NotificationResult(
            title=title,
            type=NotificationType(type).value,
            length=length,
            shown=False,
        )
        self.db.add(notification)
        await self.db.commit()
        logger.info("Notification [%s] %s", notification.type, title)
        return notification

    async def fetch_unshown(self, type: NotificationType) -> List[NotificationResult]:
        """Unshown notifications of ``type`` created since midnight (UTC)."""
        stmt = (
            select(NotificationResult)
            .where(
                NotificationResult.type == NotificationType(type).value,
                NotificationResult.shown.is_(False),
                NotificationResult.created_at >= start_of_today(),
            )
            .order_by(NotificationResult.created_at.asc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def mark_shown(self, notification_id: int) -> Optional[NotificationResult]:
        notification = await self.db.get(NotificationResult, notification_id)
        if notification is None:
            return None
        notification.shown = True
        await self.db.commit()
        return notification
