from datetime import datetime

from merchant_app.schemas.base import BaseSchema


class NotificationRead(BaseSchema):
    id: int
    title: str
    type: str
    length: int
    shown: bool
    created_at: datetime
