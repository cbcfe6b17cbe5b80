from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from typing import Optional
from sqlalchemy.orm import Session

from farmmarket.core.logging_config import get_logger
from farmmarket.db.session import get_db
from farmmarket.models.user import User
from farmmarket.schemas.checkout import WebhookAck
from farmmarket.services import payments
from farmmarket.services.orders import fulfil_checkout_session

router = APIRouter()
logger = get_logger(__name__)


def handle_checkout_completed(db: Session, session: dict) -> None:
    session_id = session.get("id")
    metadata = session.get("metadata") or {}
    try:
        user_id = int(metadata["user_id"])
        items = payments.decode_cart_metadata(metadata)
    except (KeyError, ValueError):
        logger.error("Checkout session without usable cart metadata", exc_info=True, extra={"session_id": session_id})
        return

    customer = db.query(User).filter(User.id == user_id).first()
    if customer is None:
        logger.error("Checkout session for unknown user", extra={"session_id": session_id, "user_id": user_id})
        return

    fulfil_checkout_session(db, session, customer, items)


async def get_raw_body(request: Request) -> bytes:
    return await request.body()


@router.post(
    "/stripe",
    response_model=WebhookAck,
    summary="Stripe webhook",
    description="Receives Stripe events. The body must carry a valid stripe-signature header.",
)
def stripe_webhook(
    payload: bytes = Depends(get_raw_body),
    stripe_signature: Optional[str] = Header(None, alias="stripe-signature"),
    db: Session = Depends(get_db),
):
    try:
        event = payments.verify_webhook(payload, stripe_signature)
    except payments.PaymentsNotConfigured:
        logger.error("Stripe webhook received but STRIPE_WEBHOOK_SECRET is not set")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Webhook not configured")
    except payments.InvalidWebhook as exc:
        logger.warning(f"Rejected Stripe webhook: {exc}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid signature")

    event_type = event.get("type")
    data_object = (event.get("data") or {}).get("object") or {}
    logger.info("Stripe webhook received", extra={"event_id": event.get("id"), "event_type": event_type})

    if event_type == "checkout.session.completed":
        handle_checkout_completed(db, data_object)
    elif event_type == "payment_intent.payment_failed":
        error = data_object.get("last_payment_error") or {}
        logger.warning(
            "Payment failed",
            extra={"payment_intent_id": data_object.get("id"), "reason": error.get("message")},
        )
    else:
        logger.debug(f"Unhandled Stripe event type {event_type}")

    return {"received": True, "event_type": event_type}
