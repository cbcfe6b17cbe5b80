"""
Stripe integration: checkout sessions, payment intents and webhook verification.

The secret key is passed with each call instead of being set on the SDK module.
"""

import json
from typing import Dict, List, Optional

import stripe

from farmmarket.core.config import settings
from farmmarket.core.logging_config import get_logger
from farmmarket.services.pricing import Totals, to_cents

logger = get_logger(__name__)

CURRENCY = "usd"
WEBHOOK_TOLERANCE_SECONDS = 300
# Stripe caps metadata values at 500 characters
METADATA_CHUNK_SIZE = 450
METADATA_ITEMS_PREFIX = "cart_items_"


class PaymentsNotConfigured(Exception):
    pass


class InvalidWebhook(Exception):
    pass


def _api_key() -> str:
    if not settings.stripe_secret_key:
        raise PaymentsNotConfigured("STRIPE_SECRET_KEY is not set")
    return settings.stripe_secret_key


def encode_cart_metadata(user_id: int, items: List[Dict]) -> Dict[str, str]:
    """
    Pack the cart into Stripe metadata.

    Each item is stored as ``[product_id, quantity, price]``; the JSON is split
    across ``cart_items_<n>`` keys to stay under the per-value limit.
    """
    packed = json.dumps(
        [[item["product_id"], item["quantity"], round(float(item["price"]), 2)] for item in items],
        separators=(",", ":"),
    )
    chunks = [packed[i:i + METADATA_CHUNK_SIZE] for i in range(0, len(packed), METADATA_CHUNK_SIZE)]
    metadata = {"user_id": str(user_id), "cart_chunks": str(len(chunks))}
    for index, chunk in enumerate(chunks):
        metadata[f"{METADATA_ITEMS_PREFIX}{index}"] = chunk
    return metadata


def decode_cart_metadata(metadata: Dict[str, str]) -> List[Dict]:
    """Inverse of ``encode_cart_metadata``. Raises ValueError on malformed metadata."""
    try:
        count = int(metadata["cart_chunks"])
        packed = "".join(metadata[f"{METADATA_ITEMS_PREFIX}{i}"] for i in range(count))
        rows = json.loads(packed)
        return [{"product_id": int(row[0]), "quantity": int(row[1]), "price": float(row[2])} for row in rows]
    except (KeyError, TypeError, IndexError, ValueError) as exc:
        raise ValueError(f"Malformed cart metadata: {exc}") from exc


def build_line_items(items: List[Dict], totals: Totals) -> List[Dict]:
    line_items = []
    for item in items:
        product_data = {"name": item["name"]}
        if item.get("description"):
            product_data["description"] = item["description"]
        images = [url for url in item.get("images") or [] if url.startswith(("http://", "https://"))]
        if images:
            product_data["images"] = images[:8]
        line_items.append(
            {
                "price_data": {
                    "currency": CURRENCY,
                    "product_data": product_data,
                    "unit_amount": to_cents(item["price"]),
                },
                "quantity": item["quantity"],
            }
        )
    if totals.shipping > 0:
        line_items.append(
            {
                "price_data": {
                    "currency": CURRENCY,
                    "product_data": {"name": "Shipping"},
                    "unit_amount": to_cents(totals.shipping),
                },
                "quantity": 1,
            }
        )
    if totals.tax > 0:
        line_items.append(
            {
                "price_data": {
                    "currency": CURRENCY,
                    "product_data": {"name": "Sales tax"},
                    "unit_amount": to_cents(totals.tax),
                },
                "quantity": 1,
            }
        )
    return line_items


def create_checkout_session(items: List[Dict], totals: Totals, user_id: int, customer_email: str):
    """Create a hosted Stripe Checkout session for already validated ``items``."""
    session = stripe.checkout.Session.create(
        api_key=_api_key(),
        mode="payment",
        payment_method_types=["card"],
        line_items=build_line_items(items, totals),
        success_url=f"{settings.app_url}/checkout/success?session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{settings.app_url}/checkout/cancel",
        customer_email=customer_email,
        metadata=encode_cart_metadata(user_id, items),
    )
    logger.info("Created checkout session", extra={"session_id": session.id, "user_id": user_id})
    return session


def create_payment_intent(amount_cents: int, user_id: int, customer_email: Optional[str] = None):
    params = {
        "amount": amount_cents,
        "currency": CURRENCY,
        "automatic_payment_methods": {"enabled": True},
        "metadata": {"user_id": str(user_id)},
    }
    if customer_email:
        params["receipt_email"] = customer_email
    return stripe.PaymentIntent.create(api_key=_api_key(), **params)


def verify_webhook(payload: bytes, sig_header: Optional[str]) -> Dict:
    """Check the ``Stripe-Signature`` header and return the decoded event."""
    secret = settings.stripe_webhook_secret
    if not secret:
        raise PaymentsNotConfigured("STRIPE_WEBHOOK_SECRET is not set")
    if not sig_header:
        raise InvalidWebhook("Missing stripe-signature header")
    try:
        stripe.WebhookSignature.verify_header(
            payload.decode("utf-8"), sig_header, secret, tolerance=WEBHOOK_TOLERANCE_SECONDS
        )
        return json.loads(payload)
    except stripe.SignatureVerificationError as exc:
        raise InvalidWebhook(f"Invalid signature: {exc}") from exc
    except (UnicodeDecodeError, ValueError) as exc:
        raise InvalidWebhook(f"Invalid payload: {exc}") from exc
