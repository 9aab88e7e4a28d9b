"""
Restaurant models - Menu catalogue and paid orders.

Every row is scoped by ``restaurant_id``, the identifier the storefront
stamps into checkout metadata. Orders are stored one row per document at
``Restaurants/{restaurant_id}/orders/{order_id}``.
"""

from typing import Any

from django.db import IntegrityError, models, transaction
from django.utils import timezone


class RestaurantScopedModel(models.Model):
    """
    Abstract base for restaurant-scoped catalogue models.

    Provides:
    - restaurant_id scoping
    - Created/updated timestamps
    """

    restaurant_id = models.CharField(max_length=128, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


# =============================================================================
# Menu catalogue
# =============================================================================


class MenuCategory(RestaurantScopedModel):
    """
    Category of menu items (e.g., Appetizers, Entrees, Desserts).
    """

    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    display_order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["display_order", "name"]
        verbose_name_plural = "menu categories"

    def __str__(self) -> str:
        return self.name


class MenuItem(RestaurantScopedModel):
    """
    Individual menu item.

    The price stored here is the source of truth at checkout; prices sent
    by the browser are never trusted.
    """

    category = models.ForeignKey(
        MenuCategory,
        on_delete=models.CASCADE,
        related_name="items",
    )
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    image_url = models.URLField(blank=True)
    loyalty_points = models.PositiveIntegerField(default=0)
    tags = models.JSONField(default=list, blank=True)

    # Availability (86'd when False)
    is_available = models.BooleanField(
        default=True,
        help_text="False = 86'd (unavailable)",
    )

    display_order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["display_order", "name"]
        indexes = [
            models.Index(fields=["restaurant_id", "category"]),
            models.Index(fields=["restaurant_id", "is_available"]),
        ]

    def __str__(self) -> str:
        return self.name


class ModifierGroup(RestaurantScopedModel):
    """
    Option question for a menu item (e.g., "Choose your protein").

    The group name is the question text customers answer in the cart.
    """

    item = models.ForeignKey(
        MenuItem,
        on_delete=models.CASCADE,
        related_name="modifier_groups",
    )
    name = models.CharField(max_length=200)
    subtext = models.CharField(max_length=200, blank=True)
    is_required = models.BooleanField(default=False)
    is_extra = models.BooleanField(
        default=False,
        help_text="Extras allow several choices; others are single choice",
    )
    display_order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["display_order", "name"]

    def __str__(self) -> str:
        return f"{self.item.name} > {self.name}"


class Modifier(RestaurantScopedModel):
    """
    Individual choice within a modifier group.

    Can have a price adjustment (positive or negative).
    """

    group = models.ForeignKey(
        ModifierGroup,
        on_delete=models.CASCADE,
        related_name="modifiers",
    )
    name = models.CharField(max_length=200)
    price_adjustment = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=0,
        help_text="Price change when selected (can be negative)",
    )
    display_order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["display_order", "name"]

    def __str__(self) -> str:
        if self.price_adjustment:
            sign = "+" if self.price_adjustment > 0 else ""
            return f"{self.name} ({sign}${self.price_adjustment})"
        return self.name


# =============================================================================
# Orders
# =============================================================================


class OrderStatus(models.TextChoices):
    """Order lifecycle status."""

    PENDING = "pending", "Awaiting payment"
    PAID = "paid", "Paid"
    CONFIRMED = "confirmed", "Confirmed"
    PREPARING = "preparing", "Preparing"
    READY_FOR_PICKUP = "ready_for_pickup", "Ready for pickup"
    OUT_FOR_DELIVERY = "out_for_delivery", "Out for delivery"
    DELIVERED = "delivered", "Delivered"
    COMPLETED_PICKUP = "completed_pickup", "Picked up"
    CANCELLED_BY_USER = "cancelled_by_user", "Cancelled by customer"
    REJECTED_BY_RESTAURANT = "rejected_by_restaurant", "Rejected by restaurant"


ACTIVE_ORDER_STATUSES = (
    OrderStatus.PAID,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY_FOR_PICKUP,
    OrderStatus.OUT_FOR_DELIVERY,
)

# Statuses staff may move an order to. "paid" is only ever set by a
# payment webhook.
STAFF_SETTABLE_STATUSES = tuple(s for s in OrderStatus if s != OrderStatus.PAID)


class PaymentProvider(models.TextChoices):
    """Provider that settled the order."""

    SQUARE = "square", "Square"
    STRIPE = "stripe", "Stripe"


class RestaurantOrderQuerySet(models.QuerySet["RestaurantOrder"]):
    """Queries over order documents."""

    def paid(self) -> "RestaurantOrderQuerySet":
        return self.filter(status=OrderStatus.PAID)

    def find_paid(self, square_order_id: str) -> "RestaurantOrder | None":
        """
        Find an already-paid order for a Square order, across all restaurants.
        """
        return self.paid().filter(square_order_id=square_order_id).first()

    def for_user(self, user_id: str) -> "RestaurantOrderQuerySet":
        return self.filter(user_id=user_id)

    def active(self) -> "RestaurantOrderQuerySet":
        return self.filter(status__in=ACTIVE_ORDER_STATUSES)


class RestaurantOrderManager(models.Manager["RestaurantOrder"]):
    """Manager providing merge-semantics writes."""

    def get_queryset(self) -> RestaurantOrderQuerySet:
        return RestaurantOrderQuerySet(self.model, using=self._db)

    def find_paid(self, square_order_id: str) -> "RestaurantOrder | None":
        return self.get_queryset().find_paid(square_order_id)

    def for_user(self, user_id: str) -> RestaurantOrderQuerySet:
        return self.get_queryset().for_user(user_id)

    def merge_write(
        self,
        restaurant_id: str,
        order_id: str,
        fields: dict[str, Any],
    ) -> "RestaurantOrder | None":
        """
        Insert or update an order document, touching only ``fields``.

        Runs in a transaction holding a row lock on the existing document, so
        a concurrent delivery for the same order cannot write twice. Orders
        that have already been settled (any status but ``pending``) are left
        untouched.

        Args:
            restaurant_id: Restaurant the order belongs to.
            order_id: Document ID within the restaurant's orders.
            fields: Field values to write.

        Returns:
            The written order, or None if it was already settled.
        """
        with transaction.atomic():
            order = (
                self.get_queryset()
                .select_for_update()
                .filter(restaurant_id=restaurant_id, order_id=order_id)
                .first()
            )

            if order is None:
                try:
                    with transaction.atomic():
                        return self.create(
                            restaurant_id=restaurant_id,
                            order_id=order_id,
                            **fields,
                        )
                except IntegrityError:
                    # Lost an insert race; the winner's row is now visible
                    order = (
                        self.get_queryset()
                        .select_for_update()
                        .get(restaurant_id=restaurant_id, order_id=order_id)
                    )

            if order.status != OrderStatus.PENDING:
                return None

            for name, value in fields.items():
                setattr(order, name, value)
            order.save(update_fields=list(fields))
            return order


class RestaurantOrder(models.Model):
    """
    A paid customer order.

    Written by the payment webhooks, then progressed through the lifecycle
    by restaurant staff.
    """

    restaurant_id = models.CharField(max_length=128)
    order_id = models.CharField(
        max_length=255,
        help_text="Document ID: Square order ID or Stripe payment intent ID",
    )
    user_id = models.CharField(max_length=128, db_index=True)

    status = models.CharField(
        max_length=32,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )

    # Decoded checkout metadata
    cart_items = models.JSONField(default=list)
    delivery_address = models.JSONField(default=dict)

    # Pricing
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default="USD")

    # Payment
    payment_provider = models.CharField(
        max_length=20,
        choices=PaymentProvider.choices,
    )
    square_order_id = models.CharField(max_length=255, blank=True)
    stripe_payment_intent_id = models.CharField(max_length=255, blank=True)
    payment_details = models.JSONField(
        null=True,
        blank=True,
        help_text="Payment id, status, card brand, last 4 and source type",
    )
    square_data_snapshot = models.JSONField(
        null=True,
        blank=True,
        help_text="Square order state at the time payment was recorded",
    )

    # Webhook provenance
    webhook_event_id = models.CharField(max_length=255, blank=True)
    webhook_event_type = models.CharField(max_length=100, blank=True)

    # Fulfilment
    estimated_completion_time = models.DateTimeField(null=True, blank=True)
    handled_by_staff_id = models.CharField(max_length=128, blank=True)

    # Set explicitly on every webhook write
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)

    objects = RestaurantOrderManager()

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["restaurant_id", "order_id"],
                name="unique_order_document_per_restaurant",
            ),
        ]
        indexes = [
            models.Index(fields=["square_order_id", "status"]),
            models.Index(fields=["stripe_payment_intent_id"]),
            models.Index(fields=["user_id", "status", "created_at"]),
        ]

    def __str__(self) -> str:
        return f"Order {self.order_id} ({self.status})"

    @property
    def document_path(self) -> str:
        return f"Restaurants/{self.restaurant_id}/orders/{self.order_id}"

    def to_document(self) -> dict[str, Any]:
        """Render the order with the field names the storefront reads."""
        return {
            "id": self.order_id,
            "squareOrderId": self.square_order_id or None,
            "stripePaymentIntentId": self.stripe_payment_intent_id or None,
            "userId": self.user_id,
            "restaurantId": self.restaurant_id,
            "cartItems": self.cart_items,
            "deliveryAddress": self.delivery_address,
            "status": self.status,
            "totalAmount": self.total_amount,
            "currency": self.currency,
            "paymentProvider": self.payment_provider,
            "paymentDetails": self.payment_details,
            "squareDataSnapshot": self.square_data_snapshot,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "estimatedCompletionTime": self.estimated_completion_time,
            "handledByStaffId": self.handled_by_staff_id or None,
            "webhookEventId": self.webhook_event_id,
            "webhookEventType": self.webhook_event_type,
        }
