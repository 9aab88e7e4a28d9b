"""Tests for Square payment reconciliation."""

import json
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from ordering_schemas import SquareOrder, SquareWebhookEvent

from apps.web.payments.exceptions import SquareAPIError
from apps.web.payments.reconciliation import (
    classify_event,
    minor_units_to_decimal,
    reconcile_square_event,
)
from apps.web.restaurant.models import OrderStatus, RestaurantOrder
from apps.web.restaurant.tests.factories import RestaurantOrderFactory

METADATA = {
    "userId": "u1",
    "restaurantId": "r1",
    "deliveryAddress": json.dumps({"address": "1 Infinite Loop"}),
    "cartItems": json.dumps([{"itemId": "3", "name": "Pad Thai", "quantity": 1}]),
}


def _payment_event(status: str = "COMPLETED", **payment) -> SquareWebhookEvent:
    return SquareWebhookEvent.model_validate(
        {
            "type": "payment.updated",
            "event_id": "ev1",
            "data": {
                "object": {
                    "payment": {
                        "id": "pay1",
                        "orderId": "ord1",
                        "status": status,
                        **payment,
                    }
                }
            },
        }
    )


def _order_event(state: str, amounts: list[int | None]) -> SquareWebhookEvent:
    return SquareWebhookEvent.model_validate(
        {
            "type": "order.updated",
            "event_id": "ev2",
            "data": {
                "object": {
                    "order": {
                        "id": "ord1",
                        "state": state,
                        "tenders": [{"amountMoney": {"amount": a}} for a in amounts],
                    }
                }
            },
        }
    )


def _square_order(**fields) -> SquareOrder:
    data = {
        "id": "ord1",
        "state": "COMPLETED",
        "metadata": METADATA,
        "totalMoney": {"amount": 1850, "currency": "USD"},
    }
    data.update(fields)
    return SquareOrder.model_validate(data)


@pytest.fixture(autouse=True)
def square_token(settings):
    settings.SQUARE_ACCESS_TOKEN = "sq-token"


@pytest.fixture
def square_client() -> MagicMock:
    client = MagicMock()
    client.retrieve_order.return_value = _square_order()
    return client


def _reconcile(event: SquareWebhookEvent, square_client: MagicMock):
    return reconcile_square_event(event, client_factory=lambda: square_client)


# =============================================================================
# Classification
# =============================================================================


class TestClassifyEvent:
    def test_completed_payment(self):
        signal = classify_event(_payment_event())

        assert signal.is_paid
        assert signal.order_id == "ord1"
        assert signal.payment.id == "pay1"

    def test_pending_payment(self):
        assert not classify_event(_payment_event(status="PENDING")).is_paid

    def test_payment_event_without_payment(self):
        event = SquareWebhookEvent.model_validate(
            {"type": "payment.updated", "data": {"object": {}}}
        )

        signal = classify_event(event)

        assert signal.order_id is None
        assert not signal.is_paid

    @pytest.mark.parametrize(
        ("state", "amounts", "is_paid"),
        [
            ("COMPLETED", [500], True),
            ("COMPLETED", [0, 250], True),
            ("COMPLETED", [0], False),
            ("COMPLETED", [], False),
            ("COMPLETED", [-100], False),
            ("COMPLETED", [None], False),
            ("COMPLETED", [None, 300], True),
            ("OPEN", [500], False),
        ],
    )
    def test_order_updated(self, state, amounts, is_paid):
        assert classify_event(_order_event(state, amounts)).is_paid is is_paid

    def test_null_data_treated_as_empty(self):
        event = SquareWebhookEvent.model_validate(
            {"type": "order.updated", "data": {"object": None}}
        )

        signal = classify_event(event)

        assert signal.order_id is None
        assert not signal.is_paid

    def test_unknown_event_type(self):
        event = SquareWebhookEvent.model_validate({"type": "refund.updated"})

        assert classify_event(event) is None


def test_minor_units_to_decimal():
    assert minor_units_to_decimal(2599) == Decimal("25.99")
    assert minor_units_to_decimal(0) == Decimal("0")


# =============================================================================
# Reconciliation
# =============================================================================


@pytest.mark.django_db
class TestReconcileSquareEvent:
    def test_stores_paid_order(self, square_client):
        outcome = _reconcile(
            _payment_event(
                sourceType="CARD",
                cardDetails={"card": {"cardBrand": "MASTERCARD", "last4": "4444"}},
            ),
            square_client,
        )

        assert outcome.status_code == 200
        square_client.retrieve_order.assert_called_once_with("ord1")
        square_client.close.assert_called_once()

        order = outcome.order
        assert order.document_path == "Restaurants/r1/orders/ord1"
        assert order.total_amount == Decimal("18.50")
        assert order.cart_items == [{"itemId": "3", "name": "Pad Thai", "quantity": 1}]
        assert order.delivery_address == {"address": "1 Infinite Loop"}
        assert order.payment_details["cardBrand"] == "MASTERCARD"
        assert order.payment_details["last4"] == "4444"
        assert order.created_at == order.updated_at

    def test_already_paid_skips_fetch(self, square_client):
        existing = RestaurantOrderFactory(order_id="ord1", status=OrderStatus.PAID)

        outcome = _reconcile(_payment_event(), square_client)

        assert outcome.status_code == 200
        assert outcome.order == existing
        square_client.retrieve_order.assert_not_called()

    def test_paid_lookup_spans_restaurants(self, square_client):
        RestaurantOrderFactory(
            restaurant_id="other", order_id="ord1", status=OrderStatus.PAID
        )

        outcome = _reconcile(_payment_event(), square_client)

        assert outcome.message == "Order already processed."
        assert not RestaurantOrder.objects.filter(restaurant_id="r1").exists()

    def test_pending_document_is_completed(self, square_client):
        RestaurantOrderFactory(
            restaurant_id="r1", order_id="ord1", status=OrderStatus.PENDING
        )

        outcome = _reconcile(_payment_event(), square_client)

        assert outcome.status_code == 200
        assert RestaurantOrder.objects.get(order_id="ord1").status == OrderStatus.PAID

    def test_missing_token(self, square_client, settings):
        settings.SQUARE_ACCESS_TOKEN = ""

        outcome = _reconcile(_payment_event(), square_client)

        assert outcome.status_code == 500
        square_client.retrieve_order.assert_not_called()

    def test_square_error(self, square_client):
        square_client.retrieve_order.side_effect = SquareAPIError(
            "boom", status_code=500
        )

        outcome = _reconcile(_payment_event(), square_client)

        assert outcome.status_code == 500
        square_client.close.assert_called_once()

    def test_order_without_metadata(self, square_client):
        square_client.retrieve_order.return_value = _square_order(metadata=None)

        outcome = _reconcile(_payment_event(), square_client)

        assert outcome.status_code == 400
        assert not RestaurantOrder.objects.exists()

    def test_metadata_missing_restaurant(self, square_client):
        metadata = {k: v for k, v in METADATA.items() if k != "restaurantId"}
        square_client.retrieve_order.return_value = _square_order(metadata=metadata)

        outcome = _reconcile(_payment_event(), square_client)

        assert outcome.status_code == 400

    def test_undecodable_address(self, square_client):
        square_client.retrieve_order.return_value = _square_order(
            metadata={**METADATA, "deliveryAddress": "not json"}
        )

        outcome = _reconcile(_payment_event(), square_client)

        assert outcome.status_code == 500
        assert not RestaurantOrder.objects.exists()

    def test_order_without_total(self, square_client):
        square_client.retrieve_order.return_value = _square_order(totalMoney=None)

        outcome = _reconcile(_payment_event(), square_client)

        assert outcome.order.total_amount == Decimal("0")
        assert outcome.order.currency == "USD"
