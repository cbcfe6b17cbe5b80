from typing import List, Optional
from pydantic import BaseModel, Field


class CheckoutItem(BaseModel):
    product_id: int = Field(..., gt=0)
    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field("", max_length=2000)
    price: float = Field(..., gt=0, le=999999.99)
    quantity: int = Field(..., ge=1, le=999)
    images: List[str] = Field(default_factory=list, max_length=10)


class CheckoutRequest(BaseModel):
    items: List[CheckoutItem] = Field(..., min_length=1, max_length=50)


class CheckoutSession(BaseModel):
    session_id: str
    url: Optional[str] = None


class PaymentIntentItem(BaseModel):
    product_id: int = Field(..., gt=0)
    quantity: int = Field(..., ge=1, le=999)


class PaymentIntentRequest(BaseModel):
    items: List[PaymentIntentItem] = Field(..., min_length=1, max_length=50)
    amount: Optional[float] = Field(None, gt=0, description="Total the client expects to pay, in dollars")


class PaymentIntent(BaseModel):
    client_secret: str
    payment_intent_id: str
    amount: int


class WebhookAck(BaseModel):
    received: bool
    event_type: Optional[str] = None
