"""
Checkout metadata decoding.

The storefront attaches string metadata to the provider-side order at
checkout. JSON fields are decoded into tagged results instead of raising,
so callers can map each failure to a response.
"""

import json
from dataclasses import dataclass
from typing import Any

from ordering_schemas import (
    METADATA_CART_ITEMS,
    METADATA_DELIVERY_ADDRESS,
    METADATA_RESTAURANT_ID,
    METADATA_USER_ID,
    REQUIRED_METADATA_KEYS,
)


@dataclass(frozen=True)
class Decoded:
    """A successfully decoded value."""

    value: Any
    ok: bool = True


@dataclass(frozen=True)
class DecodeFailure:
    """A value that could not be decoded, with the reason."""

    field: str
    reason: str
    ok: bool = False


DecodeResult = Decoded | DecodeFailure


@dataclass(frozen=True)
class CheckoutMetadata:
    """Decoded checkout metadata."""

    user_id: str
    restaurant_id: str
    delivery_address: Any
    cart_items: Any


def missing_metadata_fields(metadata: dict[str, Any]) -> list[str]:
    """Return the required metadata keys that are absent or empty."""
    return [key for key in REQUIRED_METADATA_KEYS if not metadata.get(key)]


def decode_json_field(field: str, raw: str) -> DecodeResult:
    """JSON-decode one metadata value."""
    try:
        return Decoded(json.loads(raw))
    except (TypeError, ValueError) as e:
        return DecodeFailure(field=field, reason=str(e))


def decode_checkout_metadata(
    metadata: dict[str, Any],
) -> CheckoutMetadata | DecodeFailure:
    """
    Decode checkout metadata whose required keys are known to be present.

    The delivery address and cart are decoded independently; the first
    failure is returned.
    """
    address = decode_json_field(
        METADATA_DELIVERY_ADDRESS, metadata[METADATA_DELIVERY_ADDRESS]
    )
    if isinstance(address, DecodeFailure):
        return address

    cart = decode_json_field(METADATA_CART_ITEMS, metadata[METADATA_CART_ITEMS])
    if isinstance(cart, DecodeFailure):
        return cart

    return CheckoutMetadata(
        user_id=str(metadata[METADATA_USER_ID]),
        restaurant_id=str(metadata[METADATA_RESTAURANT_ID]),
        delivery_address=address.value,
        cart_items=cart.value,
    )
