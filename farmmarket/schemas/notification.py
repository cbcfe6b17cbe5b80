from typing import List, Optional
from pydantic import BaseModel, Field
from farmmarket.schemas.base import TimestampSchema
from farmmarket.schemas.pagination import PaginatedResponse


class Notification(TimestampSchema):
    id: int
    user_id: int
    title: str
    message: str
    type: str
    read: bool
    order_id: Optional[int] = None
    product_id: Optional[int] = None


class NotificationPage(PaginatedResponse[Notification]):
    unread_count: int


class NotificationMark(BaseModel):
    notification_ids: List[int] = Field(..., min_length=1, max_length=100)
    mark_as_read: bool = True


class NotificationUpdateResult(BaseModel):
    updated: int
