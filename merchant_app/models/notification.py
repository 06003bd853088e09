# merchant_app/models/notification.py
from sqlalchemy import Boolean, Column, DateTime, Integer, String

from merchant_app.core.utils import utcnow
from merchant_app.database import Base


class NotificationResult(Base):
    """
    In-app toast shown to the merchant once.

    ``length`` is the display duration in milliseconds. ``shown`` flips to
    True when the admin UI clears it.
    """
    __tablename__ = "notification_results"

    id = Column(Integer, primary_key=True)
    title = Column(String(512), nullable=False)
    type = Column(String(32), nullable=False, index=True)
    length = Column(Integer, nullable=False, default=3000)
    shown = Column(Boolean, nullable=False, default=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def __repr__(self):
        return f"<NotificationResult {self.type} {self.title!r} shown={self.shown}>"
