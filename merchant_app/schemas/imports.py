"""
Request schemas for the product intake endpoints (Troll & Toad, PSA, manual).
"""
import math
from typing import Any, Dict, List, Optional, Union

from pydantic import Field, HttpUrl, field_validator

from merchant_app.core.enums import CardCondition
from merchant_app.core.utils import parse_list_input
from merchant_app.schemas.base import BaseSchema


class TrollImportRequest(BaseSchema):
    url: HttpUrl
    collection: bool = False
    quantity: int = Field(default=1, ge=1)
    price: float = Field(default=0.1, ge=0.01, allow_inf_nan=False)
    type: CardCondition = CardCondition.STANDARD
    specific_product: Optional[str] = None

    @field_validator('collection', mode='before')
    @classmethod
    def coerce_collection(cls, v):
        if v in (None, ''):
            return False
        if isinstance(v, str):
            return v.strip().lower() in ('1', 'true', 'on', 'yes')
        return bool(v)

    @field_validator('quantity', 'price', 'specific_product', mode='before')
    @classmethod
    def empty_to_default(cls, v, info):
        if v != '':
            return v
        return {'quantity': 1, 'price': 0.1, 'specific_product': None}[info.field_name]


class PSAImportRequest(BaseSchema):
    certs: Union[str, List[Any], None] = None
    prices: Union[str, List[Any], None] = None

    def cert_list(self) -> List[str]:
        return _flatten(self.certs)

    def price_list(self) -> List[float]:
        """
        Parsed prices, position for position with the certs. Unparseable or
        non-finite values become 0 so the pair is rejected later.
        """
        prices = []
        for value in _flatten(self.prices):
            try:
                price = float(value)
            except ValueError:
                price = 0.0
            prices.append(price if math.isfinite(price) else 0.0)
        return prices


def _flatten(value) -> List[str]:
    if value is None:
        return []
    if isinstance(value, list):
        items: List[str] = []
        for entry in value:
            items.extend(parse_list_input(str(entry)))
        return items
    return parse_list_input(str(value))


class ManualProductRequest(BaseSchema):
    title: str = Field(min_length=1)
    price: float = Field(gt=0, allow_inf_nan=False)
    quantity: int = Field(ge=1)
    description: Optional[str] = None
    condition: CardCondition = CardCondition.STANDARD
    card_type: Optional[str] = None
    product_type: Optional[str] = None
    ship_weight: float = Field(default=0.0, ge=0, allow_inf_nan=False)
    tags: List[str] = Field(default_factory=list)
    images: List[str] = Field(default_factory=list)
    existing_product_id: Optional[str] = None

    @field_validator('tags', mode='before')
    @classmethod
    def split_tags(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [tag.strip() for tag in v.split(',') if tag.strip()]
        return v

    def to_payload(self, shop: str) -> Dict[str, Any]:
        payload = self.model_dump(mode='json')
        payload['shop'] = shop
        return payload
