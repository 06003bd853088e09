# merchant_app/models/product.py
from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from merchant_app.core.utils import utcnow
from merchant_app.database import Base


class Product(Base):
    """Local mirror of a Shopify product, keyed by its GID."""
    __tablename__ = "products"

    id = Column(String(128), primary_key=True)
    title = Column(String(512), nullable=False, index=True)
    handle = Column(String(512), nullable=True)
    description = Column(Text, nullable=True)
    product_type = Column(String(255), nullable=True)
    status = Column(String(32), nullable=True)
    total_inventory = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    variants = relationship(
        "ProductVariant",
        back_populates="product",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ProductVariant.title",
    )

    def __repr__(self):
        return f"<Product {self.id} {self.title!r}>"


class ProductVariant(Base):
    __tablename__ = "product_variants"

    id = Column(String(128), primary_key=True)
    product_id = Column(String(128), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=True)
    sku = Column(String(255), nullable=True)
    barcode = Column(String(255), nullable=True)
    price = Column(Float, nullable=True)
    inventory_quantity = Column(Integer, nullable=False, default=0)
    inventory_item_id = Column(String(128), nullable=True)

    product = relationship("Product", back_populates="variants")

    def __repr__(self):
        return f"<ProductVariant {self.id} {self.title!r}>"
