"""
Checkout service - price a cart server side and open a Square checkout.

The payment link's order carries the metadata the Square webhook later
decodes to store the paid order.
"""

import json
import logging
from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings

from ordering_schemas import (
    METADATA_CART_ITEMS,
    METADATA_DELIVERY_ADDRESS,
    METADATA_RESTAURANT_ID,
    METADATA_USER_ID,
    MetadataCartItem,
    Money,
    SquareLineItem,
)

from apps.web.payments.square import get_square_client
from apps.web.restaurant.models import MenuItem
from apps.web.restaurant.serializers import CartItemSchema, InitiateCheckoutRequest

logger = logging.getLogger(__name__)

NOTE_MAX_LENGTH = 500


class CheckoutError(Exception):
    """Raised when a cart cannot be checked out."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class CheckoutSession:
    checkout_url: str
    order_id: str
    total: Decimal


def _choice_names(value: str | list[str]) -> list[str]:
    return value if isinstance(value, list) else [value]


def price_cart_item(restaurant_id: str, cart_item: CartItemSchema) -> Decimal:
    """
    Compute the unit price of a cart line from the menu.

    The base price comes from the MenuItem; each selected choice adds the
    price adjustment of the Modifier with that name in the ModifierGroup
    whose name matches the option question. Questions the item does not
    define are ignored. The result is never negative.

    Raises:
        CheckoutError: If the item does not exist or is unavailable.
    """
    try:
        menu_item = MenuItem.objects.prefetch_related(
            "modifier_groups__modifiers"
        ).get(restaurant_id=restaurant_id, pk=cart_item.id)
    except MenuItem.DoesNotExist as exc:
        logger.error(
            "MenuItem %s not found for restaurant %s", cart_item.id, restaurant_id
        )
        raise CheckoutError(f"Menu item {cart_item.name} not found.") from exc

    if not menu_item.is_available:
        raise CheckoutError(f"'{menu_item.name}' is currently unavailable.")

    groups = {group.name: group for group in menu_item.modifier_groups.all()}
    price = menu_item.price

    for question, selected in cart_item.selected_options.items():
        group = groups.get(question)
        if group is None:
            logger.warning(
                "Option '%s' is not defined for item %s, not priced",
                question,
                menu_item.pk,
            )
            continue

        modifiers = {modifier.name: modifier for modifier in group.modifiers.all()}
        for name in _choice_names(selected):
            modifier = modifiers.get(name)
            if modifier is not None:
                price += modifier.price_adjustment

    return max(Decimal("0"), price)


def describe_options(selected_options: dict[str, str | list[str]]) -> str:
    """Render selected options as a line item note, skipping ``_``-prefixed keys."""
    parts = []
    for question, selected in selected_options.items():
        if question.startswith("_"):
            continue
        value = ", ".join(_choice_names(selected))
        if value:
            parts.append(f"{question}: {value}")
    return "; ".join(parts)[:NOTE_MAX_LENGTH]


def build_checkout_metadata(
    user_id: str, checkout: InitiateCheckoutRequest
) -> dict[str, str]:
    """Build the order metadata the payment webhooks decode."""
    cart = [
        MetadataCartItem(
            item_id=str(item.id),
            name=item.name,
            quantity=item.quantity,
            options=item.selected_options,
        ).model_dump(by_alias=True)
        for item in checkout.cart_items
    ]
    return {
        METADATA_USER_ID: user_id,
        METADATA_RESTAURANT_ID: checkout.restaurant_id,
        METADATA_DELIVERY_ADDRESS: json.dumps(
            checkout.delivery_address.model_dump(by_alias=True)
        ),
        METADATA_CART_ITEMS: json.dumps(cart),
    }


def initiate_checkout(
    user_id: str, checkout: InitiateCheckoutRequest, buyer_email: str | None = None
) -> CheckoutSession:
    """
    Price the cart and create a Square payment link for it.

    Args:
        user_id: ID of the user placing the order
        checkout: Validated checkout request
        buyer_email: Optional email to pre-populate on the Square page

    Returns:
        CheckoutSession with the hosted checkout URL and Square order ID

    Raises:
        CheckoutError: If the cart cannot be priced or the location is not
            configured
        SquareAPIError: If Square rejects the payment link
    """
    location_id = settings.SQUARE_LOCATION_ID
    if not location_id:
        logger.error("SQUARE_LOCATION_ID is not configured")
        raise CheckoutError("Payment system configuration error.", status_code=500)

    line_items: list[SquareLineItem] = []
    total_cents = 0

    for item in checkout.cart_items:
        unit_price = price_cart_item(checkout.restaurant_id, item)
        unit_cents = int((unit_price * 100).to_integral_value())
        total_cents += unit_cents * item.quantity

        line_items.append(
            SquareLineItem(
                name=item.name or str(item.id),
                quantity=str(item.quantity),
                base_price_money=Money(amount=unit_cents, currency="USD"),
                note=describe_options(item.selected_options),
            )
        )

    logger.info(
        "Initiating Square checkout for user %s at restaurant %s",
        user_id,
        checkout.restaurant_id,
    )

    with get_square_client() as client:
        link = client.create_payment_link(
            location_id=location_id,
            line_items=line_items,
            metadata=build_checkout_metadata(user_id, checkout),
            redirect_url=f"{settings.APP_BASE_URL}/checkout/success",
            buyer_email=buyer_email,
        )

    logger.info("Square payment link %s created for order %s", link.id, link.order_id)

    return CheckoutSession(
        checkout_url=link.url,
        order_id=link.order_id,
        total=Decimal(total_cents) / Decimal(100),
    )
