"""
Schemas for the local catalog mirror. Serialised camelCase for the admin UI.
"""
from typing import List, Optional

from pydantic import ConfigDict
from pydantic.alias_generators import to_camel

from merchant_app.schemas.base import BaseSchema


class CatalogSchema(BaseSchema):
    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


class VariantRead(CatalogSchema):
    id: str
    title: Optional[str] = None
    price: Optional[float] = None
    sku: Optional[str] = None
    barcode: Optional[str] = None
    inventory_quantity: Optional[int] = None


class ProductRead(CatalogSchema):
    id: str
    title: str
    handle: Optional[str] = None
    description: Optional[str] = None
    product_type: Optional[str] = None
    status: Optional[str] = None
    total_inventory: Optional[int] = None
    variants: List[VariantRead] = []
