from sqlalchemy import Column, Enum, Numeric, String, Text, ForeignKey, Integer, JSON, TIMESTAMP
from sqlalchemy.orm import relationship
from farmmarket.models.base import BaseModel

ORDER_STATUSES = ("pending", "confirmed", "preparing", "ready", "delivered", "cancelled")
PAYMENT_STATUSES = ("pending", "paid", "failed", "refunded")
TERMINAL_STATUSES = ("delivered", "cancelled")


class Order(BaseModel):
    __tablename__ = "orders"

    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    farmer_id = Column(Integer, ForeignKey("farmers.id"), nullable=False, index=True)
    status = Column(Enum(*ORDER_STATUSES, name="order_status"), nullable=False, default="pending")
    total_amount = Column(Numeric(10, 2), nullable=False)
    delivery_address = Column(JSON)
    delivery_date = Column(TIMESTAMP)
    payment_status = Column(Enum(*PAYMENT_STATUSES, name="payment_status"), nullable=False, default="pending")
    payment_intent_id = Column(String(255))
    stripe_session_id = Column(String(255), index=True)
    notes = Column(Text)

    customer = relationship("User")
    farmer = relationship("Farmer")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")


class OrderItem(BaseModel):
    __tablename__ = "order_items"

    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)

    order = relationship("Order", back_populates="items")
    product = relationship("Product")
