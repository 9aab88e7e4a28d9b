"""
Payment services - Stripe checkout sessions.

Records a completed Stripe Checkout session as a paid order, using the
same checkout metadata contract as the Square flow.
"""

import logging
from typing import Any

from django.utils import timezone

from apps.web.payments.metadata import (
    DecodeFailure,
    decode_checkout_metadata,
    missing_metadata_fields,
)
from apps.web.payments.reconciliation import WebhookOutcome, minor_units_to_decimal
from apps.web.restaurant.models import OrderStatus, PaymentProvider, RestaurantOrder

logger = logging.getLogger(__name__)


def record_checkout_session(
    session: dict[str, Any], event_id: str, event_type: str
) -> WebhookOutcome:
    """
    Store a paid order for a completed Stripe Checkout session.

    The order document is keyed by the PaymentIntent ID (falling back to the
    session ID for sessions without one).

    Args:
        session: Stripe Checkout Session data from the webhook
        event_id: Stripe event ID
        event_type: Stripe event type

    Returns:
        WebhookOutcome describing what happened
    """
    payment_intent = session.get("payment_intent")
    payment_intent_id = (
        payment_intent if isinstance(payment_intent, str) else str(session.get("id"))
    )

    if RestaurantOrder.objects.filter(
        stripe_payment_intent_id=payment_intent_id
    ).exists():
        logger.info("Order already processed for payment: %s", payment_intent_id)
        return WebhookOutcome(200, "Order already processed.")

    metadata = session.get("metadata") or {}
    if not isinstance(metadata, dict) or missing_metadata_fields(metadata):
        logger.error(
            "Missing or invalid metadata in checkout session: %s", session.get("id")
        )
        return WebhookOutcome(400, "Missing or invalid metadata.")

    decoded = decode_checkout_metadata(metadata)
    if isinstance(decoded, DecodeFailure):
        logger.error(
            "Invalid %s metadata in checkout session %s: %s",
            decoded.field,
            session.get("id"),
            decoded.reason,
        )
        return WebhookOutcome(400, "Missing or invalid metadata.")

    payment_method_types = session.get("payment_method_types") or ["card"]
    now = timezone.now()

    order = RestaurantOrder.objects.merge_write(
        decoded.restaurant_id,
        payment_intent_id,
        {
            "stripe_payment_intent_id": payment_intent_id,
            "user_id": decoded.user_id,
            "cart_items": decoded.cart_items,
            "delivery_address": decoded.delivery_address,
            "status": OrderStatus.PAID,
            "total_amount": minor_units_to_decimal(session.get("amount_total") or 0),
            "currency": str(session.get("currency") or "usd").upper(),
            "payment_provider": PaymentProvider.STRIPE,
            "payment_details": {
                "id": payment_intent_id,
                "status": session.get("payment_status"),
                "cardBrand": None,
                "last4": None,
                "sourceType": payment_method_types[0],
            },
            "created_at": now,
            "updated_at": now,
            "webhook_event_id": event_id,
            "webhook_event_type": event_type,
        },
    )

    if order is None:
        logger.info("Order %s was settled concurrently", payment_intent_id)
        return WebhookOutcome(200, "Order already processed.")

    logger.info(
        "Order %s created via Stripe webhook at %s",
        payment_intent_id,
        order.document_path,
    )
    return WebhookOutcome(200, "Order stored.", order)
