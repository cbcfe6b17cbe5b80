"""
Order placement shared by direct orders and Stripe checkout fulfilment.

A cart may hold products from several farms; it is split into one order per
farmer. Stock is taken with conditional updates before the order row is
written.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from farmmarket.core.logging_config import get_logger
from farmmarket.models.order import Order, OrderItem
from farmmarket.models.product import Product
from farmmarket.models.user import User
from farmmarket.schemas.order import Order as OrderSchema, OrderItem as OrderItemSchema
from farmmarket.services.farmers import get_farmer_profile
from farmmarket.services.inventory import decrease_quantity, restore_quantity
from farmmarket.services.notifications import notify, order_reference
from farmmarket.services.pricing import money, to_decimal

logger = get_logger(__name__)


class InsufficientStock(Exception):
    def __init__(self, product_id: int, name: str):
        self.product_id = product_id
        self.name = name
        super().__init__(
            f"Insufficient inventory for {name} - item may have been purchased by another customer"
        )


@dataclass
class OrderLine:
    product: Product
    quantity: int
    price: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


def line_problem(product: Optional[Product], quantity: int, own_farmer_id: Optional[int] = None) -> Optional[str]:
    """Why ``quantity`` units of ``product`` cannot be ordered, or None when they can."""
    if product is None:
        return "Product not found"
    if not product.available:
        return f"{product.name} is not available"
    if product.quantity < quantity:
        return f"Insufficient inventory for {product.name}. Available: {product.quantity}"
    if own_farmer_id is not None and product.farmer_id == own_farmer_id:
        return "Farmers cannot order their own products"
    return None


def own_farmer_id(db: Session, user: User) -> Optional[int]:
    if user.role != "farmer":
        return None
    farmer = get_farmer_profile(db, user)
    return farmer.id if farmer else None


def group_by_farmer(lines: List[OrderLine]) -> Dict[int, List[OrderLine]]:
    groups: Dict[int, List[OrderLine]] = {}
    for line in lines:
        groups.setdefault(line.product.farmer_id, []).append(line)
    return groups


def create_farmer_order(
    db: Session,
    customer: User,
    farmer_id: int,
    lines: List[OrderLine],
    status: str = "pending",
    payment_status: str = "pending",
    delivery_address: Optional[dict] = None,
    delivery_date=None,
    notes: Optional[str] = None,
    stripe_session_id: Optional[str] = None,
    payment_intent_id: Optional[str] = None,
) -> Order:
    """
    Take stock for every line and write one order for ``farmer_id``.

    Raises InsufficientStock after putting back whatever this call already
    took. Flushes, does not commit.
    """
    snapshot = [(line.product.id, line.product.name, line.quantity, line.price) for line in lines]
    taken = []
    for product_id, name, quantity, _ in snapshot:
        if not decrease_quantity(db, product_id, quantity):
            for taken_id, taken_quantity in taken:
                restore_quantity(db, taken_id, taken_quantity)
            raise InsufficientStock(product_id, name)
        taken.append((product_id, quantity))

    order = Order(
        customer_id=customer.id,
        farmer_id=farmer_id,
        status=status,
        payment_status=payment_status,
        total_amount=money(sum((price * quantity for _, _, quantity, price in snapshot), Decimal("0"))),
        delivery_address=delivery_address,
        delivery_date=delivery_date,
        notes=notes,
        stripe_session_id=stripe_session_id,
        payment_intent_id=payment_intent_id,
    )
    order.items = [
        OrderItem(product_id=product_id, quantity=quantity, price=price)
        for product_id, _, quantity, price in snapshot
    ]
    db.add(order)
    db.flush()
    return order


def notify_order_placed(db: Session, order: Order, customer: User, paid: bool = False) -> None:
    ref = order_reference(order.id)
    total = f"${float(order.total_amount):.2f}"
    if paid:
        customer_title = "Order Confirmed & Paid"
        customer_message = f"Your order {ref} has been confirmed and paid successfully. Total: {total}"
        farmer_title = "New Paid Order Received"
        farmer_message = f"You have received a new paid order {ref} from {customer.name}. Total: {total}"
    else:
        customer_title = "Order Placed Successfully"
        customer_message = f"Your order {ref} has been placed successfully. Total: {total}"
        farmer_title = "New Order Received"
        farmer_message = f"You have received a new order {ref} from {customer.name}. Total: {total}"

    notify(db, customer.id, customer_title, customer_message, type="order_update", order_id=order.id)
    if order.farmer is not None:
        notify(db, order.farmer.user_id, farmer_title, farmer_message, type="order_update", order_id=order.id)


def place_orders(db: Session, customer: User, lines: List[OrderLine], **order_fields) -> List[Order]:
    """Split ``lines`` per farmer and write every order, all or nothing. Commits."""
    orders = []
    try:
        for farmer_id, farmer_lines in group_by_farmer(lines).items():
            order = create_farmer_order(db, customer, farmer_id, farmer_lines, **order_fields)
            notify_order_placed(db, order, customer)
            orders.append(order)
        db.commit()
    except Exception:
        db.rollback()
        raise
    for order in orders:
        db.refresh(order)
    logger.info(
        f"Placed {len(orders)} order(s)",
        extra={"customer_id": customer.id, "order_ids": [order.id for order in orders]},
    )
    return orders


def _session_delivery_address(session: dict) -> Optional[dict]:
    details = session.get("shipping_details") or session.get("customer_details") or {}
    address = details.get("address") if isinstance(details, dict) else None
    if not address:
        return None
    return {
        "address": " ".join(part for part in (address.get("line1"), address.get("line2")) if part),
        "city": address.get("city") or "",
        "state": address.get("state") or "",
        "zip_code": address.get("postal_code") or "",
    }


def fulfil_checkout_session(db: Session, session: dict, customer: User, items: List[dict]) -> List[Order]:
    """
    Turn a completed checkout session into paid orders.

    Items that no longer validate are skipped, and a farmer whose order
    fails is skipped without affecting the others. A session that already
    produced orders is ignored.
    """
    session_id = session.get("id")
    if session_id and db.query(Order).filter(Order.stripe_session_id == session_id).first():
        logger.info("Checkout session already fulfilled", extra={"session_id": session_id})
        return []

    exclude_farmer = own_farmer_id(db, customer)
    lines = []
    for item in items:
        product = db.query(Product).filter(Product.id == item["product_id"]).first()
        problem = line_problem(product, item["quantity"], exclude_farmer)
        if problem:
            logger.warning(
                f"Skipping checkout item: {problem}",
                extra={"session_id": session_id, "product_id": item["product_id"]},
            )
            continue
        lines.append(OrderLine(product=product, quantity=item["quantity"], price=to_decimal(item["price"])))

    delivery_address = _session_delivery_address(session)
    orders = []
    for farmer_id, farmer_lines in group_by_farmer(lines).items():
        try:
            order = create_farmer_order(
                db,
                customer,
                farmer_id,
                farmer_lines,
                status="confirmed",
                payment_status="paid",
                delivery_address=delivery_address,
                stripe_session_id=session_id,
                payment_intent_id=session.get("payment_intent"),
            )
            notify_order_placed(db, order, customer, paid=True)
            db.commit()
            orders.append(order)
        except InsufficientStock as exc:
            db.rollback()
            logger.error(
                f"Could not create paid order: {exc}",
                extra={"session_id": session_id, "farmer_id": farmer_id},
            )
        except SQLAlchemyError:
            db.rollback()
            logger.error(
                "Database error while creating paid order",
                exc_info=True,
                extra={"session_id": session_id, "farmer_id": farmer_id},
            )

    logger.info(
        f"Checkout session produced {len(orders)} order(s)",
        extra={"session_id": session_id, "customer_id": customer.id},
    )
    return orders


def order_to_schema(order: Order) -> OrderSchema:
    """Order with customer, farm and product details filled in."""
    items = []
    for item in order.items:
        product = item.product
        items.append(
            OrderItemSchema(
                id=item.id,
                product_id=item.product_id,
                quantity=item.quantity,
                price=item.price,
                product_name=product.name if product else None,
                product_unit=product.unit if product else None,
                product_images=list(product.images or []) if product else [],
            )
        )
    return OrderSchema(
        id=order.id,
        customer_id=order.customer_id,
        farmer_id=order.farmer_id,
        status=order.status,
        payment_status=order.payment_status,
        total_amount=order.total_amount,
        delivery_address=order.delivery_address,
        delivery_date=order.delivery_date,
        notes=order.notes,
        customer_name=order.customer.name if order.customer else None,
        customer_email=order.customer.email if order.customer else None,
        farmer_name=order.farmer.farm_name if order.farmer else None,
        items=items,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )
