import stripe
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from farmmarket.auth.security import get_current_active_user
from farmmarket.core.logging_config import get_logger
from farmmarket.core.rate_limit import max_body_size, rate_limit
from farmmarket.db.session import get_db
from farmmarket.models.product import Product
from farmmarket.models.user import User
from farmmarket.schemas.checkout import CheckoutRequest, CheckoutSession, PaymentIntent, PaymentIntentRequest
from farmmarket.services import payments
from farmmarket.services.orders import line_problem, own_farmer_id
from farmmarket.services.pricing import compute_totals, prices_match, to_cents, to_decimal

router = APIRouter()
logger = get_logger(__name__)

checkout_limits = [Depends(max_body_size(100 * 1024)), Depends(rate_limit("checkout", 10, 60))]


def _payments_unavailable() -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Payments are not configured")


@router.post(
    "",
    response_model=CheckoutSession,
    summary="Start Stripe checkout",
    description="Validate the cart against current listings and create a Stripe Checkout session.",
    dependencies=checkout_limits,
)
def create_checkout(
    checkout: CheckoutRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """
    Create a checkout session.

    - **items**: 1-50 cart items with product_id, name, description, price, quantity and images.
      Name, description and price must match the current listing.
    """
    exclude_farmer = own_farmer_id(db, current_user)
    validated = []
    for index, item in enumerate(checkout.items, start=1):
        product = db.query(Product).filter(Product.id == item.product_id).first()
        problem = line_problem(product, item.quantity, exclude_farmer)
        if problem:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Item {index}: {problem}")
        if not prices_match(item.price, product.price):
            logger.warning(
                "Checkout price mismatch",
                extra={"product_id": product.id, "client_price": item.price, "user_id": current_user.id},
            )
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Item {index}: Price mismatch for {product.name}. Please refresh your cart.",
            )
        if item.name != product.name or (item.description or "") != (product.description or ""):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Item {index}: Product details have changed. Please refresh your cart.",
            )
        validated.append(
            {
                "product_id": product.id,
                "name": product.name,
                "description": product.description,
                "images": list(product.images or []),
                "price": to_decimal(product.price),
                "quantity": item.quantity,
            }
        )

    totals = compute_totals((item["price"], item["quantity"]) for item in validated)
    try:
        session = payments.create_checkout_session(validated, totals, current_user.id, current_user.email)
    except payments.PaymentsNotConfigured:
        raise _payments_unavailable()
    except stripe.StripeError:
        logger.error("Stripe checkout session creation failed", exc_info=True, extra={"user_id": current_user.id})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create checkout session"
        )

    return {"session_id": session.id, "url": session.url}


@router.post(
    "/payment-intent",
    response_model=PaymentIntent,
    summary="Create a payment intent",
    description="Create a Stripe PaymentIntent for the cart; the amount is computed from current prices.",
    dependencies=checkout_limits,
)
def create_payment_intent(
    request: PaymentIntentRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """
    - **items**: product_id and quantity pairs
    - **amount**: Optional total the client expects, rejected when it differs from the computed total
    """
    exclude_farmer = own_farmer_id(db, current_user)
    priced = []
    for index, item in enumerate(request.items, start=1):
        product = db.query(Product).filter(Product.id == item.product_id).first()
        problem = line_problem(product, item.quantity, exclude_farmer)
        if problem:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Item {index}: {problem}")
        priced.append((product.price, item.quantity))

    totals = compute_totals(priced)
    if request.amount is not None and not prices_match(request.amount, totals.total):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Valid amount is required")

    amount_cents = to_cents(totals.total)
    try:
        intent = payments.create_payment_intent(amount_cents, current_user.id, current_user.email)
    except payments.PaymentsNotConfigured:
        raise _payments_unavailable()
    except stripe.StripeError:
        logger.error("Payment intent creation failed", exc_info=True, extra={"user_id": current_user.id})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create payment intent"
        )

    return {"client_secret": intent.client_secret, "payment_intent_id": intent.id, "amount": amount_cents}
