from sqlalchemy import case, update
from sqlalchemy.orm import Session

from farmmarket.core.logging_config import get_logger
from farmmarket.models.product import Product

logger = get_logger(__name__)


def decrease_quantity(db: Session, product_id: int, quantity: int) -> bool:
    """
    Take ``quantity`` units out of stock in a single conditional UPDATE.

    Returns False, leaving the row untouched, when fewer than ``quantity``
    units are left. A product that reaches zero is marked unavailable.
    Does not commit.
    """
    db.flush()
    result = db.execute(
        update(Product)
        .where(Product.id == product_id, Product.quantity >= quantity)
        .values(quantity=Product.quantity - quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        logger.info("Stock decrement refused", extra={"product_id": product_id, "requested": quantity})
        return False

    db.execute(
        update(Product)
        .where(Product.id == product_id, Product.quantity <= 0)
        .values(available=False)
        .execution_options(synchronize_session=False)
    )
    db.expire_all()
    return True


def restore_quantity(db: Session, product_id: int, quantity: int) -> None:
    """Put units back into stock, e.g. when an order is cancelled. Does not commit."""
    db.flush()
    db.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(
            quantity=Product.quantity + quantity,
            # re-list products that sold out, leave manual delistings alone
            available=case((Product.quantity <= 0, True), else_=Product.available),
        )
        .execution_options(synchronize_session=False)
    )
    db.expire_all()
