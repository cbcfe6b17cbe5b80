from typing import List, Optional
from pydantic import BaseModel, Field


class CartItem(BaseModel):
    product_id: int = Field(..., gt=0)
    quantity: int = Field(..., ge=1, le=999)
    price: Optional[float] = Field(None, gt=0, description="Price the client displayed, if any")


class CartQuoteRequest(BaseModel):
    items: List[CartItem] = Field(..., min_length=1, max_length=50)


class CartTotals(BaseModel):
    subtotal: float
    shipping: float
    tax: float
    total: float


class QuoteLine(BaseModel):
    product_id: int
    name: Optional[str] = None
    unit: Optional[str] = None
    farmer_id: Optional[int] = None
    price: Optional[float] = None
    quantity: int
    line_total: float = 0
    available: bool
    in_stock: bool
    price_changed: bool = False


class CartQuote(BaseModel):
    lines: List[QuoteLine]
    totals: CartTotals
    valid: bool
    problems: List[str] = []
