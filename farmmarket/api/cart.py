from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from farmmarket.auth.security import get_current_user_optional
from farmmarket.db.session import get_db
from farmmarket.models.product import Product
from farmmarket.models.user import User
from farmmarket.schemas.cart import CartQuote, CartQuoteRequest, CartTotals, QuoteLine
from farmmarket.services.orders import line_problem, own_farmer_id
from farmmarket.services.pricing import compute_totals, money, prices_match, to_decimal

router = APIRouter()


@router.post(
    "/quote",
    response_model=CartQuote,
    summary="Price a cart",
    description="Re-price cart items against current listings and compute shipping, tax and total.",
)
def quote_cart(
    cart: CartQuoteRequest,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_current_user_optional),
):
    """
    Quote a cart before checkout. Lines that cannot be bought are reported and left out of the totals.

    - **items**: product_id, quantity and optionally the price the client displayed
    """
    exclude_farmer = own_farmer_id(db, current_user) if current_user else None
    lines = []
    problems = []
    priced = []

    for item in cart.items:
        product = db.query(Product).filter(Product.id == item.product_id).first()
        if product is None:
            lines.append(QuoteLine(product_id=item.product_id, quantity=item.quantity, available=False, in_stock=False))
            problems.append(f"Product {item.product_id} not found")
            continue

        price = to_decimal(product.price)
        price_changed = item.price is not None and not prices_match(item.price, price)
        problem = line_problem(product, item.quantity, exclude_farmer)
        if problem:
            problems.append(problem)
        else:
            priced.append((price, item.quantity))
        if price_changed:
            problems.append(f"The price of {product.name} changed to ${price:.2f}")

        lines.append(
            QuoteLine(
                product_id=product.id,
                name=product.name,
                unit=product.unit,
                farmer_id=product.farmer_id,
                price=float(price),
                quantity=item.quantity,
                line_total=float(money(price * item.quantity)),
                available=bool(product.available),
                in_stock=product.quantity >= item.quantity,
                price_changed=price_changed,
            )
        )

    totals = compute_totals(priced)
    return CartQuote(lines=lines, totals=CartTotals(**totals.as_dict()), valid=not problems, problems=problems)
