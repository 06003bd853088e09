# merchant_app/models/lot.py
from sqlalchemy import Boolean, Column, Date, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from merchant_app.core.utils import utcnow
from merchant_app.database import Base


class Lot(Base):
    """A bulk purchase of cards, tracked from payment to listing."""
    __tablename__ = "lots"

    id = Column(Integer, primary_key=True, autoincrement=True)
    purchase_date = Column(Date, nullable=False)
    total_cost = Column(Float, nullable=False)
    lot_value = Column(Float, nullable=True)
    # Amount still owed to the vendor
    initial_debt = Column(Float, nullable=False, default=0.0)
    shipping_status = Column(String(32), nullable=False, default="pending_shipment")
    tracking_number = Column(String(64), nullable=True)
    estimated_delivery_date = Column(Date, nullable=True)
    vendor = Column(String(255), nullable=True)
    lot_type = Column(String(64), nullable=True)
    notes = Column(Text, nullable=True)
    spreadsheet_link = Column(String(1024), nullable=True)
    collector_link = Column(String(1024), nullable=True)
    is_converted = Column(Boolean, nullable=False, default=False)
    converted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    products = relationship(
        "LotProduct",
        back_populates="lot",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="LotProduct.id",
    )
    payments = relationship(
        "DebtPayment",
        back_populates="lot",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="DebtPayment.payment_date.desc()",
    )

    def __repr__(self):
        return f"<Lot {self.id} {self.vendor!r}>"


class LotProduct(Base):
    __tablename__ = "lot_products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    lot_id = Column(Integer, ForeignKey("lots.id", ondelete="CASCADE"), nullable=False, index=True)
    product_name = Column(String(512), nullable=False)
    sku = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    estimated_quantity = Column(Integer, nullable=False, default=1)
    shopify_product_id = Column(String(128), nullable=True)
    is_converted = Column(Boolean, nullable=False, default=False)
    converted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    lot = relationship("Lot", back_populates="products")
    variants = relationship(
        "LotProductVariant",
        back_populates="lot_product",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="LotProductVariant.id",
    )

    def __repr__(self):
        return f"<LotProduct {self.id} {self.product_name!r}>"


class LotProductVariant(Base):
    __tablename__ = "lot_product_variants"

    id = Column(Integer, primary_key=True, autoincrement=True)
    lot_product_id = Column(Integer, ForeignKey("lot_products.id", ondelete="CASCADE"), nullable=False, index=True)
    variant_name = Column(String(255), nullable=False)
    condition = Column(String(64), nullable=True)
    rarity = Column(String(64), nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    estimated_value = Column(Float, nullable=True)
    shopify_variant_id = Column(String(128), nullable=True)
    is_converted = Column(Boolean, nullable=False, default=False)
    converted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    lot_product = relationship("LotProduct", back_populates="variants")

    @property
    def label(self) -> str:
        """Option value used for this variant on the Shopify product"""
        return " - ".join(part for part in (self.variant_name, self.condition, self.rarity) if part)


class DebtPayment(Base):
    __tablename__ = "debt_payments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    lot_id = Column(Integer, ForeignKey("lots.id", ondelete="CASCADE"), nullable=False, index=True)
    payment_amount = Column(Float, nullable=False)
    payment_date = Column(Date, nullable=False)
    payment_method = Column(String(64), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    lot = relationship("Lot", back_populates="payments")
