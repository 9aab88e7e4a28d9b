"""
Pydantic schemas for checkout and order API requests and responses.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

from ordering_schemas import DeliveryAddress
from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# Checkout
# =============================================================================


class CartItemSchema(BaseModel):
    """A cart line as sent by the storefront."""

    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(description="MenuItem ID")
    name: str = Field(default="", max_length=200)
    quantity: int = Field(..., ge=1, le=99)
    selected_options: dict[str, str | list[str]] = Field(
        default_factory=dict, alias="selectedOptions"
    )


class InitiateCheckoutRequest(BaseModel):
    """Request body for POST /api/orders/initiate-checkout."""

    model_config = ConfigDict(populate_by_name=True)

    restaurant_id: str = Field(..., min_length=1, alias="restaurantId")
    delivery_address: DeliveryAddress = Field(..., alias="deliveryAddress")
    cart_items: list[CartItemSchema] = Field(..., min_length=1, alias="cartItems")


class InitiateCheckoutResponse(BaseModel):
    """Response for POST /api/orders/initiate-checkout."""

    checkout_url: str
    order_id: str
    total: Decimal
    message: str = "Checkout created successfully"


# =============================================================================
# Orders
# =============================================================================


class OrderDocumentSchema(BaseModel):
    """An order as exposed to customers and staff."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    square_order_id: str | None = Field(alias="squareOrderId")
    stripe_payment_intent_id: str | None = Field(alias="stripePaymentIntentId")
    user_id: str = Field(alias="userId")
    restaurant_id: str = Field(alias="restaurantId")
    cart_items: Any = Field(alias="cartItems")
    delivery_address: Any = Field(alias="deliveryAddress")
    status: str
    total_amount: Decimal = Field(alias="totalAmount")
    currency: str
    payment_provider: str = Field(alias="paymentProvider")
    payment_details: dict[str, Any] | None = Field(alias="paymentDetails")
    square_data_snapshot: dict[str, Any] | None = Field(alias="squareDataSnapshot")
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")
    estimated_completion_time: datetime | None = Field(
        alias="estimatedCompletionTime"
    )
    handled_by_staff_id: str | None = Field(alias="handledByStaffId")
    webhook_event_id: str = Field(alias="webhookEventId")
    webhook_event_type: str = Field(alias="webhookEventType")


class OrderListResponse(BaseModel):
    """Response for GET /api/orders/mine and /api/orders/mine/active."""

    orders: list[OrderDocumentSchema]


class OrderStatusUpdateRequest(BaseModel):
    """Request body for PUT .../orders/{order_id}/status."""

    model_config = ConfigDict(populate_by_name=True)

    status: str = Field(..., min_length=1)
    estimated_completion_time: datetime | None = Field(
        default=None, alias="estimatedCompletionTime"
    )


class OrderStatusUpdateResponse(BaseModel):
    """Response for PUT .../orders/{order_id}/status."""

    success: bool
    message: str
    order: OrderDocumentSchema | None = None


class ValidationErrorDetail(BaseModel):
    """A single validation error."""

    field: str
    message: str


class ValidationErrorResponse(BaseModel):
    """Response for validation errors."""

    error: Literal["validation_error"]
    details: list[ValidationErrorDetail]
