from typing import Optional

from sqlalchemy.orm import Session

from farmmarket.models.notification import Notification

ORDER_STATUS_MESSAGES = {
    "confirmed": "Your order has been confirmed and is being prepared.",
    "preparing": "Your order is now being prepared.",
    "ready": "Your order is ready for pickup/delivery.",
    "delivered": "Your order has been delivered successfully.",
    "cancelled": "Your order has been cancelled.",
}


def notify(
    db: Session,
    user_id: int,
    title: str,
    message: str,
    type: str = "system",
    order_id: Optional[int] = None,
    product_id: Optional[int] = None,
) -> Notification:
    """Queue a notification on the session. The caller commits."""
    notification = Notification(
        user_id=user_id,
        title=title,
        message=message,
        type=type,
        order_id=order_id,
        product_id=product_id,
    )
    db.add(notification)
    return notification


def order_reference(order_id: int) -> str:
    return f"#{order_id:06d}"
