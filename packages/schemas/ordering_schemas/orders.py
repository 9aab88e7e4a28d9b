"""Order schemas - the metadata attached at checkout."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# Checkout metadata
# =============================================================================

# Keys of the provider-side metadata map. Values are strings; the address
# and cart are JSON-encoded.
METADATA_USER_ID = "userId"
METADATA_RESTAURANT_ID = "restaurantId"
METADATA_DELIVERY_ADDRESS = "deliveryAddress"
METADATA_CART_ITEMS = "cartItems"

REQUIRED_METADATA_KEYS = (
    METADATA_USER_ID,
    METADATA_RESTAURANT_ID,
    METADATA_DELIVERY_ADDRESS,
    METADATA_CART_ITEMS,
)


class DeliveryAddress(BaseModel):
    """A saved customer address."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str = ""
    address: str = Field(..., min_length=1, max_length=500)
    is_default: bool = Field(default=False, alias="isDefault")


class MetadataCartItem(BaseModel):
    """Simplified cart line stored in order metadata."""

    model_config = ConfigDict(populate_by_name=True)

    item_id: str = Field(alias="itemId")
    name: str
    quantity: int
    options: dict[str, Any] = Field(default_factory=dict)
