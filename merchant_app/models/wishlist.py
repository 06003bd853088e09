# merchant_app/models/wishlist.py
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Table
from sqlalchemy.orm import relationship

from merchant_app.core.utils import utcnow
from merchant_app.database import Base

wishlist_keywords = Table(
    "wishlist_keywords",
    Base.metadata,
    Column("wishlist_id", Integer, ForeignKey("wishlists.id", ondelete="CASCADE"), primary_key=True),
    Column("keyword_id", Integer, ForeignKey("keywords.id", ondelete="CASCADE"), primary_key=True),
)


class Wishlist(Base):
    """One wishlist per storefront customer."""
    __tablename__ = "wishlists"

    id = Column(Integer, primary_key=True)
    customer_id = Column(String(128), nullable=False, unique=True, index=True)
    email = Column(String(320), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    keywords = relationship(
        "Keyword",
        secondary=wishlist_keywords,
        back_populates="wishlists",
        lazy="selectin",
        order_by="Keyword.value",
    )

    def __repr__(self):
        return f"<Wishlist {self.customer_id}>"


class Keyword(Base):
    __tablename__ = "keywords"

    id = Column(Integer, primary_key=True)
    value = Column(String(255), nullable=False, unique=True, index=True)

    wishlists = relationship(
        "Wishlist",
        secondary=wishlist_keywords,
        back_populates="keywords",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<Keyword {self.value!r}>"


class SuggestedKeyword(Base):
    """Keywords offered to customers in the storefront extension."""
    __tablename__ = "suggested_keywords"

    id = Column(Integer, primary_key=True)
    value = Column(String(255), nullable=False, unique=True)
    # who added it, "admin" for the keyword manager
    source = Column(String(32), nullable=False, default="admin", server_default="admin")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self):
        return f"<SuggestedKeyword {self.value!r}>"
