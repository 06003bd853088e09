# merchant_app/models/email_sent.py
from sqlalchemy import Column, DateTime, String

from merchant_app.core.utils import utcnow
from merchant_app.database import Base


class EmailSent(Base):
    # One row per product; last_sent drives the 24h restock email cooldown
    __tablename__ = "emails_sent"

    id = Column(String(128), primary_key=True)
    last_sent = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self):
        return f"<EmailSent {self.id} {self.last_sent}>"
