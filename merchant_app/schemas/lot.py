from datetime import date, datetime
from typing import List, Optional

from pydantic import ConfigDict, Field, field_validator

from merchant_app.core.enums import ShippingStatus
from merchant_app.schemas.base import BaseSchema


class LotVariantCreate(BaseSchema):
    variant_name: str = Field(min_length=1, max_length=255)
    condition: Optional[str] = None
    rarity: Optional[str] = None
    quantity: int = Field(default=1, ge=0)
    estimated_value: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)


class LotVariantUpdate(BaseSchema):
    variant_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    condition: Optional[str] = None
    rarity: Optional[str] = None
    quantity: Optional[int] = Field(default=None, ge=0)
    estimated_value: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)


class LotVariantRead(BaseSchema):
    id: int
    variant_name: str
    condition: Optional[str] = None
    rarity: Optional[str] = None
    quantity: int
    estimated_value: Optional[float] = None
    shopify_variant_id: Optional[str] = None
    is_converted: bool


class LotProductCreate(BaseSchema):
    product_name: str = Field(min_length=1, max_length=512)
    sku: Optional[str] = None
    description: Optional[str] = None
    estimated_quantity: int = Field(default=1, ge=0)
    shopify_product_id: Optional[str] = None


class LotProductUpdate(BaseSchema):
    product_name: Optional[str] = Field(default=None, min_length=1, max_length=512)
    sku: Optional[str] = None
    description: Optional[str] = None
    estimated_quantity: Optional[int] = Field(default=None, ge=0)


class LotProductRead(BaseSchema):
    id: int
    lot_id: int
    product_name: str
    sku: Optional[str] = None
    description: Optional[str] = None
    estimated_quantity: int
    shopify_product_id: Optional[str] = None
    is_converted: bool
    converted_at: Optional[datetime] = None
    variants: List[LotVariantRead] = []


class DebtPaymentCreate(BaseSchema):
    payment_amount: float = Field(gt=0, allow_inf_nan=False)
    payment_date: Optional[date] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None


class DebtPaymentRead(BaseSchema):
    id: int
    payment_amount: float
    payment_date: date
    payment_method: Optional[str] = None
    notes: Optional[str] = None


class LotCreate(BaseSchema):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True, use_enum_values=True)

    purchase_date: date
    total_cost: float = Field(ge=0, allow_inf_nan=False)
    lot_value: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    initial_debt: float = Field(default=0.0, ge=0, allow_inf_nan=False)
    shipping_status: ShippingStatus = ShippingStatus.PENDING_SHIPMENT
    tracking_number: Optional[str] = None
    estimated_delivery_date: Optional[date] = None
    vendor: Optional[str] = None
    lot_type: Optional[str] = None
    notes: Optional[str] = None
    spreadsheet_link: Optional[str] = None
    collector_link: Optional[str] = None


class LotUpdate(BaseSchema):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True, use_enum_values=True)

    purchase_date: Optional[date] = None
    total_cost: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    lot_value: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    initial_debt: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    shipping_status: Optional[ShippingStatus] = None
    tracking_number: Optional[str] = None
    estimated_delivery_date: Optional[date] = None
    vendor: Optional[str] = None
    lot_type: Optional[str] = None
    notes: Optional[str] = None
    spreadsheet_link: Optional[str] = None
    collector_link: Optional[str] = None


class LotRead(BaseSchema):
    id: int
    purchase_date: date
    total_cost: float
    lot_value: Optional[float] = None
    initial_debt: float
    shipping_status: str
    tracking_number: Optional[str] = None
    estimated_delivery_date: Optional[date] = None
    vendor: Optional[str] = None
    lot_type: Optional[str] = None
    notes: Optional[str] = None
    spreadsheet_link: Optional[str] = None
    collector_link: Optional[str] = None
    is_converted: bool
    converted_at: Optional[datetime] = None
    created_at: datetime
    products: List[LotProductRead] = []
    payments: List[DebtPaymentRead] = []


class LotProductConvertRequest(BaseSchema):
    """Body of the convert endpoint; the admin UI posts camelCase names"""
    lot_product_id: Optional[int] = Field(default=None, alias="lotProductId")
    default_price: float = Field(default=0.0, ge=0, alias="defaultPrice", allow_inf_nan=False)

    @field_validator('lot_product_id', 'default_price', mode='before')
    @classmethod
    def blank_is_missing(cls, v, info):
        # Form posts send empty strings for untouched fields
        if v == '' or v is None:
            return None if info.field_name == 'lot_product_id' else 0.0
        return v
