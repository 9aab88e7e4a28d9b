"""
Square payment reconciliation - turns verified webhook events into orders.

Flow for a verified event:
1. Classify the event and decide whether it represents a completed payment
2. Skip orders that are already recorded as paid
3. Fetch the authoritative order from Square
4. Validate and decode the checkout metadata
5. Merge-write the order document

Each branch ends in a WebhookOutcome whose status code tells Square
whether to retry the delivery.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from django.conf import settings
from django.utils import timezone

from ordering_schemas import Money, SquareOrder, SquarePayment, SquareWebhookEvent

from apps.web.payments.exceptions import SquareAPIError
from apps.web.payments.metadata import (
    CheckoutMetadata,
    DecodeFailure,
    decode_checkout_metadata,
    missing_metadata_fields,
)
from apps.web.payments.square import SquareClient, get_square_client
from apps.web.restaurant.models import OrderStatus, PaymentProvider, RestaurantOrder

logger = logging.getLogger(__name__)

SQUARE_COMPLETED = "COMPLETED"
SQUARE_PAYMENT_EVENTS = ("payment.updated", "order.updated")


@dataclass(frozen=True)
class WebhookOutcome:
    """Result of processing one webhook delivery."""

    status_code: int
    message: str
    order: RestaurantOrder | None = None


@dataclass(frozen=True)
class PaymentSignal:
    """What a webhook event says about an order's payment."""

    order_id: str | None
    is_paid: bool
    payment: SquarePayment | None = None


def classify_event(event: SquareWebhookEvent) -> PaymentSignal | None:
    """
    Extract the order ID and paid flag from a Square event.

    Returns:
        The payment signal, or None for event types we don't act on.
    """
    match event.type:
        case "payment.updated":
            payment = event.data_object.payment
            if payment is None:
                return PaymentSignal(order_id=None, is_paid=False)
            return PaymentSignal(
                order_id=payment.order_id,
                is_paid=payment.status == SQUARE_COMPLETED,
                payment=payment,
            )
        case "order.updated":
            order = event.data_object.order
            if order is None:
                return PaymentSignal(order_id=None, is_paid=False)
            return PaymentSignal(
                order_id=order.id,
                is_paid=order.state == SQUARE_COMPLETED
                and order.has_positive_tender(),
            )
        case _:
            return None


def minor_units_to_decimal(amount: int) -> Decimal:
    """Convert an amount in minor units (cents) to a decimal amount."""
    return Decimal(amount) / Decimal(100)


def _money(money: Money | None) -> dict[str, Any] | None:
    return money.model_dump(mode="json") if money else None


def _payment_details(payment: SquarePayment | None) -> dict[str, Any] | None:
    if payment is None:
        return None

    card = payment.card_details.card if payment.card_details else None
    return {
        "id": payment.id,
        "status": payment.status,
        "cardBrand": card.card_brand if card else None,
        "last4": card.last_4 if card else None,
        "sourceType": payment.source_type,
    }


def _square_snapshot(order: SquareOrder) -> dict[str, Any]:
    return {
        "id": order.id,
        "state": order.state,
        "version": order.version,
        "netAmountDueMoney": _money(order.net_amount_due_money),
        "totalTaxMoney": _money(order.total_tax_money),
        "totalDiscountMoney": _money(order.total_discount_money),
        "tenders": [
            t.model_dump(mode="json", exclude_none=True) for t in order.tenders or []
        ],
        "source": order.source.name if order.source else None,
    }


def build_order_fields(
    square_order_id: str,
    event: SquareWebhookEvent,
    square_order: SquareOrder,
    metadata: CheckoutMetadata,
    payment: SquarePayment | None,
) -> dict[str, Any]:
    """Normalize a paid Square order into order document fields."""
    total = square_order.total_money
    amount = total.amount if total and total.amount is not None else 0
    now = timezone.now()

    return {
        "square_order_id": square_order_id,
        "user_id": metadata.user_id,
        "cart_items": metadata.cart_items,
        "delivery_address": metadata.delivery_address,
        "status": OrderStatus.PAID,
        "total_amount": minor_units_to_decimal(amount),
        "currency": (total.currency if total else None) or "USD",
        "payment_provider": PaymentProvider.SQUARE,
        "payment_details": _payment_details(payment),
        "square_data_snapshot": _square_snapshot(square_order),
        "created_at": now,
        "updated_at": now,
        "webhook_event_id": event.event_id or "",
        "webhook_event_type": event.type,
    }


def reconcile_square_event(
    event: SquareWebhookEvent,
    client_factory: Callable[[], SquareClient] = get_square_client,
) -> WebhookOutcome:
    """
    Process a verified Square webhook event.

    Args:
        event: The parsed event.
        client_factory: Builds the Square client used for the order lookup.

    Returns:
        The outcome to report back to Square.
    """
    event_id = event.event_id
    logger.info("Received Square event %s (event_id=%s)", event.type, event_id)

    signal = classify_event(event)
    if signal is None:
        logger.info("Unhandled Square event type %s, acknowledging", event.type)
        return WebhookOutcome(
            200, f"Event type {event.type} received and acknowledged."
        )

    if not signal.is_paid:
        logger.info(
            "Event %s for order %s does not signify a completed payment",
            event_id,
            signal.order_id,
        )
        return WebhookOutcome(
            200, "Event received, payment not completed or not relevant."
        )

    square_order_id = signal.order_id
    if not square_order_id:
        logger.error("Paid event %s carries no order ID", event_id)
        return WebhookOutcome(400, "Missing order ID in webhook event.")

    existing = RestaurantOrder.objects.find_paid(square_order_id)
    if existing is not None:
        logger.info(
            "Order %s already processed as paid (%s), skipping event %s",
            square_order_id,
            existing.document_path,
            event_id,
        )
        return WebhookOutcome(200, "Order already processed.", order=existing)

    if not settings.SQUARE_ACCESS_TOKEN:
        logger.error(
            "Square access token is not configured; cannot fetch order %s",
            square_order_id,
        )
        return WebhookOutcome(
            500, "Internal configuration error: Square token missing."
        )

    client = client_factory()
    try:
        square_order = client.retrieve_order(square_order_id)
    except SquareAPIError as e:
        logger.error("Failed to retrieve order %s from Square: %s", square_order_id, e)
        square_order = None
    finally:
        client.close()

    if square_order is None:
        logger.error(
            "Order %s could not be retrieved (event %s)", square_order_id, event_id
        )
        return WebhookOutcome(500, "Failed to retrieve order details from Square.")

    if square_order.metadata is None:
        logger.error("Metadata missing for Square order %s", square_order_id)
        return WebhookOutcome(400, "Order metadata missing from Square API response.")

    missing = missing_metadata_fields(square_order.metadata)
    if missing:
        logger.error(
            "Square order %s is missing metadata fields: %s",
            square_order_id,
            ", ".join(missing),
        )
        return WebhookOutcome(400, "Essential order metadata missing in fetched order.")

    metadata = decode_checkout_metadata(square_order.metadata)
    if isinstance(metadata, DecodeFailure):
        logger.error(
            "Failed to decode %s metadata for order %s: %s",
            metadata.field,
            square_order_id,
            metadata.reason,
        )
        return WebhookOutcome(500, "Error processing order metadata.")

    fields = build_order_fields(
        square_order_id, event, square_order, metadata, signal.payment
    )
    order = RestaurantOrder.objects.merge_write(
        metadata.restaurant_id, square_order_id, fields
    )

    if order is None:
        logger.info(
            "Order %s was settled concurrently, skipping event %s",
            square_order_id,
            event_id,
        )
        return WebhookOutcome(200, "Order already processed.")

    logger.info(
        "Order %s (event %s) stored at %s",
        square_order_id,
        event_id,
        order.document_path,
    )
    return WebhookOutcome(
        200, "Webhook processed successfully and order stored.", order
    )
