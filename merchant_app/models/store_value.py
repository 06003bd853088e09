# merchant_app/models/store_value.py
from sqlalchemy import Column, DateTime, Float, Integer, String

from merchant_app.core.utils import utcnow
from merchant_app.database import Base


class StoreValueSnapshot(Base):
    """Point-in-time value of stock at a location (price x available)."""
    __tablename__ = "store_value_snapshots"

    id = Column(Integer, primary_key=True)
    shop = Column(String(255), nullable=False, index=True)
    location_id = Column(String(128), nullable=True)
    value = Column(Float, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def __repr__(self):
        return f"<StoreValueSnapshot {self.shop} {self.value}>"
