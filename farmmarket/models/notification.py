from sqlalchemy import Column, Enum, String, Text, Boolean, ForeignKey, Integer
from farmmarket.models.base import BaseModel

NOTIFICATION_TYPES = ("order_update", "product_available", "promotion", "system")


class Notification(BaseModel):
    __tablename__ = "notifications"

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(Enum(*NOTIFICATION_TYPES, name="notification_types"), nullable=False, default="system")
    read = Column(Boolean, default=False, nullable=False)
    order_id = Column(Integer, ForeignKey("orders.id"))
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"))
