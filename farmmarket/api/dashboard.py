from decimal import Decimal

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from farmmarket.auth.security import get_current_active_user
from farmmarket.core.rate_limit import rate_limit
from farmmarket.db.session import get_db
from farmmarket.models.order import Order
from farmmarket.models.product import Product
from farmmarket.models.user import User
from farmmarket.schemas.dashboard import Dashboard
from farmmarket.services.farmers import get_or_create_farmer_profile

router = APIRouter()

LOW_STOCK_THRESHOLD = 10
RECENT_LIMIT = 5


def _order_totals(db: Session, *criteria):
    """(count, sum of totals) over non-cancelled orders matching ``criteria``."""
    count, total = (
        db.query(func.count(Order.id), func.coalesce(func.sum(Order.total_amount), 0))
        .filter(Order.status != "cancelled", *criteria)
        .one()
    )
    return count, float(Decimal(str(total)))


def _recent(db: Session, *criteria):
    orders = db.query(Order).filter(*criteria).order_by(Order.created_at.desc(), Order.id.desc()).limit(RECENT_LIMIT)
    return [
        {"id": o.id, "status": o.status, "total": float(o.total_amount), "created_at": o.created_at}
        for o in orders
    ]


@router.get(
    "",
    response_model=Dashboard,
    summary="Dashboard statistics",
    description="Sales figures for farmers, purchase figures for everyone.",
    dependencies=[Depends(rate_limit("dashboard", 30, 60))],
)
def read_dashboard(db: Session = Depends(get_db), current_user: User = Depends(get_current_active_user)):
    purchases, spent = _order_totals(db, Order.customer_id == current_user.id)

    if current_user.role != "farmer":
        return {
            "role": current_user.role,
            "stats": {"total_purchases_made": purchases, "total_money_spent": spent},
            "recent_orders": _recent(db, Order.customer_id == current_user.id),
        }

    farmer = get_or_create_farmer_profile(db, current_user)
    db.commit()
    received, earnings = _order_totals(db, Order.farmer_id == farmer.id)
    low_stock = (
        db.query(Product)
        .filter(
            Product.farmer_id == farmer.id,
            Product.available.is_(True),
            Product.quantity < LOW_STOCK_THRESHOLD,
        )
        .order_by(Product.quantity.asc(), Product.id.asc())
        .limit(RECENT_LIMIT)
        .all()
    )
    return {
        "role": current_user.role,
        "stats": {
            "total_orders_received": received,
            "total_earnings": earnings,
            "total_purchases_made": purchases,
            "total_money_spent": spent,
            "low_stock_products": len(low_stock),
        },
        "recent_orders": _recent(db, Order.farmer_id == farmer.id),
        "low_stock_products": [{"id": p.id, "name": p.name, "quantity": p.quantity} for p in low_stock],
    }
