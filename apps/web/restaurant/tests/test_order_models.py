"""
Tests for the order document model and its merge-write semantics.
"""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.db import IntegrityError
from django.utils import timezone

import pytest

from apps.web.restaurant.models import (
    OrderStatus,
    PaymentProvider,
    RestaurantOrder,
)
from apps.web.restaurant.tests.factories import RestaurantOrderFactory


def _fields(**overrides) -> dict:
    now = timezone.now()
    fields = {
        "square_order_id": "ord1",
        "user_id": "u1",
        "cart_items": [{"itemId": "1", "quantity": 1}],
        "delivery_address": {"address": "123 Main St"},
        "status": OrderStatus.PAID,
        "total_amount": Decimal("12.00"),
        "currency": "USD",
        "payment_provider": PaymentProvider.SQUARE,
        "created_at": now,
        "updated_at": now,
        "webhook_event_id": "ev1",
        "webhook_event_type": "payment.updated",
    }
    fields.update(overrides)
    return fields


@pytest.mark.django_db
class TestMergeWrite:
    def test_creates_document(self):
        order = RestaurantOrder.objects.merge_write("r1", "ord1", _fields())

        assert order is not None
        assert order.pk is not None
        assert order.document_path == "Restaurants/r1/orders/ord1"
        assert order.status == OrderStatus.PAID

    def test_completes_pending_document_keeping_other_fields(self):
        RestaurantOrderFactory(
            restaurant_id="r1",
            order_id="ord1",
            status=OrderStatus.PENDING,
            handled_by_staff_id="staff-9",
        )

        order = RestaurantOrder.objects.merge_write("r1", "ord1", _fields())

        assert order is not None
        stored = RestaurantOrder.objects.get(restaurant_id="r1", order_id="ord1")
        assert stored.status == OrderStatus.PAID
        assert stored.webhook_event_id == "ev1"
        assert stored.handled_by_staff_id == "staff-9"

    @pytest.mark.parametrize(
        "status",
        [OrderStatus.PAID, OrderStatus.CONFIRMED, OrderStatus.DELIVERED],
    )
    def test_settled_document_left_untouched(self, status):
        existing = RestaurantOrderFactory(
            restaurant_id="r1", order_id="ord1", status=status
        )
        later = existing.updated_at + timedelta(minutes=5)

        result = RestaurantOrder.objects.merge_write(
            "r1", "ord1", _fields(updated_at=later, webhook_event_id="ev-dup")
        )

        assert result is None
        stored = RestaurantOrder.objects.get(pk=existing.pk)
        assert stored.status == status
        assert stored.updated_at == existing.updated_at
        assert stored.webhook_event_id == existing.webhook_event_id

    def test_same_order_id_in_other_restaurant_is_separate(self):
        RestaurantOrderFactory(restaurant_id="r2", order_id="ord1")

        order = RestaurantOrder.objects.merge_write("r1", "ord1", _fields())

        assert order is not None
        assert RestaurantOrder.objects.filter(order_id="ord1").count() == 2

    def test_lost_insert_race_defers_to_winner(self):
        winner = RestaurantOrderFactory(
            restaurant_id="r1", order_id="ord1", status=OrderStatus.PAID
        )
        manager = RestaurantOrder.objects

        with patch.object(
            type(manager), "create", side_effect=IntegrityError("duplicate key")
        ), patch.object(
            type(manager.get_queryset()), "first", return_value=None
        ):
            result = manager.merge_write("r1", "ord1", _fields())

        assert result is None
        assert RestaurantOrder.objects.get(pk=winner.pk).status == OrderStatus.PAID


@pytest.mark.django_db
class TestOrderQueries:
    def test_find_paid_ignores_other_statuses(self):
        RestaurantOrderFactory(order_id="ord1", status=OrderStatus.CONFIRMED)

        assert RestaurantOrder.objects.find_paid("ord1") is None

    def test_find_paid_across_restaurants(self):
        paid = RestaurantOrderFactory(
            restaurant_id="r9", order_id="ord1", status=OrderStatus.PAID
        )

        assert RestaurantOrder.objects.find_paid("ord1") == paid

    def test_active_orders(self):
        active = RestaurantOrderFactory(status=OrderStatus.PREPARING)
        RestaurantOrderFactory(status=OrderStatus.DELIVERED)
        RestaurantOrderFactory(status=OrderStatus.CANCELLED_BY_USER)

        assert list(RestaurantOrder.objects.for_user("u1").active()) == [active]


@pytest.mark.django_db
def test_to_document_uses_storefront_field_names():
    order = RestaurantOrderFactory(
        restaurant_id="r1",
        order_id="ord1",
        webhook_event_id="ev1",
        stripe_payment_intent_id="",
    )

    document = order.to_document()

    assert document["id"] == "ord1"
    assert document["restaurantId"] == "r1"
    assert document["squareOrderId"] == "ord1"
    assert document["stripePaymentIntentId"] is None
    assert document["webhookEventId"] == "ev1"
    assert document["totalAmount"] == Decimal("25.99")
    assert document["handledByStaffId"] is None
