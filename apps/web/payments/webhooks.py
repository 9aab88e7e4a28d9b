"""
Payment webhook handlers.

Square (order reconciliation):
- payment.updated: payment COMPLETED -> store paid order
- order.updated: order COMPLETED with a positive tender -> store paid order

Stripe:
- checkout.session.completed: store paid order

Status codes are the whole contract: providers retry on non-2xx, so only
failures worth retrying (or needing an operator) return 5xx.
"""

import json
import logging

from django.conf import settings
from django.http import HttpRequest, HttpResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

import stripe
from ordering_schemas import SquareWebhookEvent
from pydantic import ValidationError as PydanticValidationError

from apps.web.payments.exceptions import WebhookSignatureError
from apps.web.payments.reconciliation import (
    SQUARE_PAYMENT_EVENTS,
    reconcile_square_event,
)
from apps.web.payments.services import record_checkout_session
from apps.web.payments.square import SquareClient

logger = logging.getLogger(__name__)

SQUARE_SIGNATURE_HEADERS = ("x-square-hmacsha256-signature", "x-square-signature")


def _square_signature(request: HttpRequest) -> str:
    for header in SQUARE_SIGNATURE_HEADERS:
        value = request.headers.get(header)
        if value:
            return value
    return ""


@csrf_exempt
@require_POST
def square_webhook(request: HttpRequest) -> HttpResponse:
    """
    Handle Square webhook events.

    POST /payments/webhooks/square
    """
    signature_key = settings.SQUARE_SIGNATURE_KEY
    notification_url = settings.SQUARE_WEBHOOK_URL

    if not signature_key or not notification_url:
        logger.critical(
            "Square webhook signature key or URL is not configured "
            "(has_signature_key=%s, has_webhook_url=%s)",
            bool(signature_key),
            bool(notification_url),
        )
        return HttpResponse("Webhook configuration error.", status=500)

    # Verify webhook signature
    payload = request.body
    signature = _square_signature(request)
    try:
        is_valid = SquareClient.verify_webhook_signature(
            payload, signature, signature_key, notification_url
        )
    except WebhookSignatureError as e:
        logger.warning("Error validating Square webhook signature: %s", e)
        return HttpResponse("Webhook signature validation error.", status=400)

    if not is_valid:
        logger.warning(
            "Square webhook signature validation failed (expected url=%s)",
            notification_url,
        )
        return HttpResponse("Forbidden: Invalid signature.", status=403)

    logger.info("Square webhook signature validated")

    try:
        body = json.loads(payload)
    except ValueError as e:
        logger.warning("Invalid Square webhook payload: %s", e)
        return HttpResponse("Invalid payload", status=400)

    if not isinstance(body, dict):
        logger.warning("Square webhook payload is not an object")
        return HttpResponse("Invalid payload", status=400)

    # Only the payment events are validated past the envelope.
    event_type = body.get("type") or ""
    if event_type not in SQUARE_PAYMENT_EVENTS:
        logger.info(
            "Unhandled Square event type %s (event_id=%s), acknowledging",
            event_type,
            body.get("event_id") or body.get("eventId"),
        )
        return HttpResponse(
            f"Event type {event_type} received and acknowledged.", status=200
        )

    try:
        event = SquareWebhookEvent.model_validate(body)
    except PydanticValidationError as e:
        logger.warning("Invalid Square %s payload: %s", event_type, e)
        return HttpResponse("Invalid payload", status=400)

    try:
        outcome = reconcile_square_event(event)
    except Exception:
        logger.exception(
            "Unhandled error processing Square webhook (event_id=%s)", event.event_id
        )
        return HttpResponse(
            "Internal Server Error while processing event.", status=500
        )

    return HttpResponse(outcome.message, status=outcome.status_code)


@csrf_exempt
@require_POST
def stripe_webhook(request: HttpRequest) -> HttpResponse:
    """
    Handle Stripe webhook events.

    POST /payments/webhooks/stripe

    Events handled:
    - checkout.session.completed: Order paid
    """
    webhook_secret = settings.STRIPE_WEBHOOK_SECRET
    if not webhook_secret:
        logger.critical("Stripe webhook secret is not configured")
        return HttpResponse("Webhook configuration error.", status=500)

    payload = request.body
    sig_header = request.headers.get("Stripe-Signature", "")

    # Verify webhook signature
    try:
        event = stripe.Webhook.construct_event(payload, sig_header, webhook_secret)
    except ValueError as e:
        logger.warning("Invalid Stripe webhook payload: %s", e)
        return HttpResponse("Invalid payload", status=400)
    except stripe.SignatureVerificationError as e:
        logger.warning("Invalid Stripe webhook signature: %s", e)
        return HttpResponse("Invalid signature", status=400)

    logger.info("Received Stripe event: %s", event["type"])

    # Route to handler
    match event["type"]:
        case "checkout.session.completed":
            try:
                outcome = record_checkout_session(
                    event["data"]["object"], event.get("id", ""), event["type"]
                )
            except Exception:
                logger.exception(
                    "Failed to process Stripe event %s", event.get("id", "")
                )
                return HttpResponse("Failed to process order.", status=500)
            return HttpResponse(outcome.message, status=outcome.status_code)
        case _:
            logger.debug("Ignoring unhandled Stripe event: %s", event["type"])

    return HttpResponse(status=200)
