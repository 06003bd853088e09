# merchant_app/models/session.py
from sqlalchemy import Boolean, Column, DateTime, String, Text

from merchant_app.database import Base


class ShopSession(Base):
    """
    Offline Shopify access credential for a shop.

    Rows are written by the app install/OAuth flow; everything in this
    service only reads them.
    """
    __tablename__ = "shopify_sessions"

    id = Column(String(255), primary_key=True)
    shop = Column(String(255), nullable=False, index=True)
    state = Column(String(255), nullable=True)
    is_online = Column(Boolean, nullable=False, default=False)
    scope = Column(Text, nullable=True)
    expires = Column(DateTime(timezone=True), nullable=True)
    access_token = Column(Text, nullable=False)
    user_id = Column(String(64), nullable=True)

    def __repr__(self):
        return f"<ShopSession {self.shop} online={self.is_online}>"
