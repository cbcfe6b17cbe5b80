from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel


class DashboardStats(BaseModel):
    total_purchases_made: int
    total_money_spent: float
    total_orders_received: Optional[int] = None
    total_earnings: Optional[float] = None
    low_stock_products: Optional[int] = None


class DashboardOrder(BaseModel):
    id: int
    status: str
    total: float
    created_at: datetime


class LowStockProduct(BaseModel):
    id: int
    name: str
    quantity: int


class Dashboard(BaseModel):
    role: str
    stats: DashboardStats
    recent_orders: List[DashboardOrder]
    low_stock_products: Optional[List[LowStockProduct]] = None
