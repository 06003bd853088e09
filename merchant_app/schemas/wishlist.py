from datetime import datetime
from typing import List, Optional

from pydantic import field_validator

from merchant_app.schemas.base import BaseSchema

WISHLIST_INTENTS = ("add_keyword", "remove_keyword", "set_email", "unsubscribe")


class WishlistAction(BaseSchema):
    """Body posted by the storefront extension. Every field is checked by the route."""
    id: Optional[str] = None
    intent: Optional[str] = None
    keyword: Optional[str] = None
    email: Optional[str] = None

    @field_validator('id', mode='before')
    @classmethod
    def coerce_id(cls, v):
        # Customer ids arrive as numbers from some clients
        if v is None or v == '':
            return None
        return str(v).strip()


class WishlistResponse(BaseSchema):
    keywords: List[str]
    email: Optional[str] = None
    suggestedKeywords: List[str]


class SuggestedKeywordRead(BaseSchema):
    id: int
    value: str
    source: str
    created_at: datetime


class SuggestedKeywordCreate(BaseSchema):
    keyword: Optional[str] = None


class SuggestedKeywordBulkDelete(BaseSchema):
    ids: List[int]
