from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session, joinedload, selectinload

from farmmarket.auth.security import get_current_active_user, is_farmer_or_admin
from farmmarket.core.logging_config import get_logger
from farmmarket.core.rate_limit import max_body_size, rate_limit
from farmmarket.db.session import get_db
from farmmarket.models.order import ORDER_STATUSES, TERMINAL_STATUSES, Order, OrderItem
from farmmarket.models.product import Product
from farmmarket.models.user import User
from farmmarket.schemas.order import Order as OrderSchema, OrderCreate, OrderPlacement, OrderUpdate
from farmmarket.schemas.pagination import PaginatedResponse, paginate
from farmmarket.services.inventory import restore_quantity
from farmmarket.services.notifications import ORDER_STATUS_MESSAGES, notify, order_reference
from farmmarket.services.orders import (
    InsufficientStock,
    OrderLine,
    line_problem,
    order_to_schema,
    own_farmer_id,
    place_orders,
)
from farmmarket.services.pricing import compute_totals, prices_match, to_decimal

router = APIRouter()
logger = get_logger(__name__)


def _order_query(db: Session):
    return db.query(Order).options(
        joinedload(Order.customer),
        joinedload(Order.farmer),
        selectinload(Order.items).joinedload(OrderItem.product),
    )


def _get_order_or_404(db: Session, order_id: int) -> Order:
    order = _order_query(db).filter(Order.id == order_id).first()
    if order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return order


@router.post(
    "",
    response_model=OrderPlacement,
    status_code=status.HTTP_201_CREATED,
    summary="Place an order",
    description="Place an order for cart items. Items from different farms become separate orders.",
    dependencies=[Depends(max_body_size(200 * 1024)), Depends(rate_limit("orders:create", 5, 60))],
)
def create_order(
    order_in: OrderCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """
    Place an order. Payment status always starts as pending.

    - **items**: 1-100 items with product_id, quantity (1-999) and the price shown to the customer
    - **delivery_address**: address, city, state and zip_code
    - **delivery_date**: Optional, within the next 90 days
    - **notes**: Delivery instructions (max 500 characters)
    - **total_amount**: Subtotal + shipping + 8% tax, as shown to the customer
    """
    exclude_farmer = own_farmer_id(db, current_user)
    lines = []
    for index, item in enumerate(order_in.items, start=1):
        product = db.query(Product).filter(Product.id == item.product_id).first()
        if product is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Item {index}: Product not found")
        problem = line_problem(product, item.quantity, exclude_farmer)
        if problem:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Item {index}: {problem}")
        if not prices_match(item.price, product.price):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Item {index}: Price of {product.name} has changed to ${float(product.price):.2f}",
            )
        lines.append(OrderLine(product=product, quantity=item.quantity, price=to_decimal(product.price)))

    totals = compute_totals((line.price, line.quantity) for line in lines)
    if not prices_match(order_in.total_amount, totals.total):
        logger.warning(
            "Total amount mismatch",
            extra={"calculated": float(totals.total), "provided": order_in.total_amount, "user_id": current_user.id},
        )
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Total amount mismatch")

    try:
        orders = place_orders(
            db,
            current_user,
            lines,
            delivery_address=order_in.delivery_address.model_dump(),
            delivery_date=order_in.delivery_date,
            notes=order_in.notes,
        )
    except InsufficientStock as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))

    count = len(orders)
    return {
        "message": f"{count} order{'s' if count > 1 else ''} created successfully",
        "orders": [order_to_schema(order) for order in orders],
        "total_amount": float(totals.total),
    }


@router.get(
    "",
    response_model=PaginatedResponse[OrderSchema],
    summary="List orders",
    description="Purchases (role=customer) or orders received (role=farmer). Admins see every order by default.",
)
def read_orders(
    role: Optional[Literal["customer", "farmer"]] = Query(None, description="customer or farmer view"),
    status_filter: Optional[str] = Query(None, alias="status", description="Filter by order status"),
    page: int = Query(1, ge=1, description="Page number starting from 1"),
    per_page: int = Query(10, ge=1, le=50, description="Items per page (1-50)"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """
    List orders visible to the current user, newest first.

    - **role**: customer (my purchases) or farmer (orders my farm received)
    - **status**: Only orders in this status
    - **page** / **per_page**: Pagination
    """
    query = _order_query(db)
    if role == "farmer":
        if current_user.role != "farmer":
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Farmer access required")
        query = query.filter(Order.farmer_id == own_farmer_id(db, current_user))
    elif role == "customer" or current_user.role != "admin":
        query = query.filter(Order.customer_id == current_user.id)

    if status_filter:
        if status_filter not in ORDER_STATUSES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid status. Must be one of: {', '.join(ORDER_STATUSES)}",
            )
        query = query.filter(Order.status == status_filter)

    result = paginate(query.order_by(Order.created_at.desc(), Order.id.desc()), page, per_page)
    result["items"] = [order_to_schema(order) for order in result["items"]]
    return result


@router.get("/{order_id}", response_model=OrderSchema, summary="Get order by ID")
def read_order(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """
    Visible to the customer who placed it, the farmer who received it, and admins.
    """
    order = _get_order_or_404(db, order_id)
    if (
        current_user.role != "admin"
        and order.customer_id != current_user.id
        and order.farmer_id != own_farmer_id(db, current_user)
    ):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to view this order")
    return order_to_schema(order)


@router.patch(
    "/{order_id}",
    response_model=OrderSchema,
    summary="Update an order",
    description="Move an order through its lifecycle. Only the receiving farmer or an admin may update it.",
)
def update_order(
    order_id: int,
    update: OrderUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(is_farmer_or_admin),
):
    """
    Update order status, notes or delivery date.

    - **status**: pending, confirmed, preparing, ready, delivered or cancelled
    - **notes**: Delivery instructions
    - **delivery_date**: New delivery date

    Delivered and cancelled orders can no longer change. Cancelling puts the stock back.
    """
    order = _get_order_or_404(db, order_id)
    if current_user.role != "admin" and order.farmer_id != own_farmer_id(db, current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to update this order")
    if order.status in TERMINAL_STATUSES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Cannot update a {order.status} order")

    update_data = update.model_dump(exclude_unset=True)
    new_status = update_data.pop("status", None)
    for field, value in update_data.items():
        setattr(order, field, value)

    if new_status and new_status != order.status:
        previous_status = order.status
        order.status = new_status
        if new_status == "cancelled":
            for item in order.items:
                restore_quantity(db, item.product_id, item.quantity)
            if order.payment_status == "paid":
                logger.warning("Paid order cancelled, refund required", extra={"order_id": order.id})

        status_message = ORDER_STATUS_MESSAGES.get(new_status, f"Your order status is now {new_status}.")
        notify(
            db,
            order.customer_id,
            "Order Status Updated",
            f"Order {order_reference(order.id)}: {status_message}",
            type="order_update",
            order_id=order.id,
        )
        logger.info(
            "Order status changed",
            extra={"order_id": order.id, "from_status": previous_status, "to_status": new_status},
        )

    db.commit()
    return order_to_schema(_get_order_or_404(db, order_id))
