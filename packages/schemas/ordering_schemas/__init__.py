"""Ordering Schemas - Pydantic models for data contracts."""

from ordering_schemas.orders import (
    METADATA_CART_ITEMS,
    METADATA_DELIVERY_ADDRESS,
    METADATA_RESTAURANT_ID,
    METADATA_USER_ID,
    REQUIRED_METADATA_KEYS,
    DeliveryAddress,
    MetadataCartItem,
)
from ordering_schemas.square import (
    Money,
    SquareEventObject,
    SquareLineItem,
    SquareOrder,
    SquarePayment,
    SquarePaymentLink,
    SquareWebhookEvent,
    Tender,
)

__all__ = [
    # Orders
    "METADATA_CART_ITEMS",
    "METADATA_DELIVERY_ADDRESS",
    "METADATA_RESTAURANT_ID",
    "METADATA_USER_ID",
    "REQUIRED_METADATA_KEYS",
    "DeliveryAddress",
    "MetadataCartItem",
    # Square
    "Money",
    "SquareEventObject",
    "SquareLineItem",
    "SquareOrder",
    "SquarePayment",
    "SquarePaymentLink",
    "SquareWebhookEvent",
    "Tender",
]
