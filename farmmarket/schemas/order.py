from datetime import datetime, timedelta, timezone
from typing import List, Literal, Optional
from pydantic import BaseModel, Field, field_validator
from farmmarket.schemas.base import BaseSchema, TimestampSchema

OrderStatus = Literal["pending", "confirmed", "preparing", "ready", "delivered", "cancelled"]
PaymentStatus = Literal["pending", "paid", "failed", "refunded"]

MAX_DELIVERY_DAYS = 90


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class DeliveryAddress(BaseModel):
    address: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    zip_code: str = Field(..., min_length=1, max_length=20)


class OrderItemCreate(BaseModel):
    product_id: int = Field(..., gt=0)
    quantity: int = Field(..., ge=1, le=999)
    price: float = Field(..., gt=0, le=999999.99)


class OrderCreate(BaseModel):
    items: List[OrderItemCreate] = Field(..., min_length=1, max_length=100)
    delivery_address: DeliveryAddress
    delivery_date: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=500)
    total_amount: float = Field(..., gt=0)

    @field_validator("delivery_date")
    @classmethod
    def delivery_window(cls, v):
        if v is None:
            return v
        v = _naive_utc(v)
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        if v.date() < now.date():
            raise ValueError("Delivery date cannot be in the past")
        if v > now + timedelta(days=MAX_DELIVERY_DAYS):
            raise ValueError(f"Delivery date must be within the next {MAX_DELIVERY_DAYS} days")
        return v


class OrderUpdate(BaseModel):
    status: Optional[OrderStatus] = None
    notes: Optional[str] = Field(None, max_length=500)
    delivery_date: Optional[datetime] = None


class OrderItem(BaseSchema):
    id: int
    product_id: int
    quantity: int
    price: float
    product_name: Optional[str] = None
    product_unit: Optional[str] = None
    product_images: List[str] = []


class Order(TimestampSchema):
    id: int
    customer_id: int
    farmer_id: int
    status: OrderStatus
    payment_status: PaymentStatus
    total_amount: float
    delivery_address: Optional[dict] = None
    delivery_date: Optional[datetime] = None
    notes: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    farmer_name: Optional[str] = None
    items: List[OrderItem] = []


class OrderPlacement(BaseModel):
    message: str
    orders: List[Order]
    total_amount: float
