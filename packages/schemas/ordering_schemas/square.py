"""Square schemas - webhook events and order data returned by the Square API.

Square's REST API and webhooks send snake_case keys; the JavaScript SDK
(and payloads built from it) use camelCase. Both spellings are accepted.
"""

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

# =============================================================================
# Money
# =============================================================================


class Money(BaseModel):
    """An amount in minor currency units (e.g. cents)."""

    amount: int | None = 0
    currency: str | None = None


def _alias(name: str, camel: str) -> AliasChoices:
    return AliasChoices(name, camel)


# =============================================================================
# Payments
# =============================================================================


class Card(BaseModel):
    """Card summary attached to a card payment."""

    card_brand: str | None = Field(
        default=None, validation_alias=_alias("card_brand", "cardBrand")
    )
    last_4: str | None = Field(
        default=None, validation_alias=_alias("last_4", "last4")
    )


class CardDetails(BaseModel):
    """Card payment details."""

    card: Card | None = None


class SquarePayment(BaseModel):
    """The payment object carried by a ``payment.updated`` event."""

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    order_id: str | None = Field(
        default=None, validation_alias=_alias("order_id", "orderId")
    )
    status: str | None = None
    card_details: CardDetails | None = Field(
        default=None, validation_alias=_alias("card_details", "cardDetails")
    )
    source_type: str | None = Field(
        default=None, validation_alias=_alias("source_type", "sourceType")
    )


# =============================================================================
# Orders
# =============================================================================


class Tender(BaseModel):
    """A tender (payment method) applied to an order."""

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    type: str | None = None
    amount_money: Money | None = Field(
        default=None, validation_alias=_alias("amount_money", "amountMoney")
    )

    @property
    def amount(self) -> int:
        if self.amount_money is None:
            return 0
        return self.amount_money.amount or 0


class OrderSource(BaseModel):
    """Where the order was created (e.g. "Online Checkout")."""

    name: str | None = None


class SquareOrder(BaseModel):
    """A Square order, either embedded in a webhook or fetched from the API."""

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    state: str | None = None
    version: int | None = None
    location_id: str | None = Field(
        default=None, validation_alias=_alias("location_id", "locationId")
    )
    metadata: dict[str, str] | None = None
    total_money: Money | None = Field(
        default=None, validation_alias=_alias("total_money", "totalMoney")
    )
    net_amount_due_money: Money | None = Field(
        default=None,
        validation_alias=_alias("net_amount_due_money", "netAmountDueMoney"),
    )
    total_tax_money: Money | None = Field(
        default=None, validation_alias=_alias("total_tax_money", "totalTaxMoney")
    )
    total_discount_money: Money | None = Field(
        default=None,
        validation_alias=_alias("total_discount_money", "totalDiscountMoney"),
    )
    tenders: list[Tender] | None = None
    source: OrderSource | None = None

    def has_positive_tender(self) -> bool:
        """True if at least one tender moved a positive amount."""
        return any(tender.amount > 0 for tender in self.tenders or [])


# =============================================================================
# Webhook envelope
# =============================================================================


class SquareEventObject(BaseModel):
    """``data.object`` of a Square webhook event."""

    model_config = ConfigDict(extra="allow")

    payment: SquarePayment | None = None
    order: SquareOrder | None = None


class SquareEventData(BaseModel):
    """``data`` of a Square webhook event."""

    model_config = ConfigDict(extra="allow")

    type: str | None = None
    id: str | None = None
    object: SquareEventObject | None = None


class SquareWebhookEvent(BaseModel):
    """A Square webhook notification."""

    model_config = ConfigDict(extra="allow")

    type: str = ""
    event_id: str | None = Field(
        default="", validation_alias=_alias("event_id", "eventId")
    )
    merchant_id: str | None = None
    created_at: str | None = None
    data: SquareEventData | None = None

    @property
    def data_object(self) -> SquareEventObject:
        """``data.object``, empty when Square sends it as null or omits it."""
        if self.data is None or self.data.object is None:
            return SquareEventObject()
        return self.data.object


# =============================================================================
# Online checkout
# =============================================================================


class SquareLineItem(BaseModel):
    """Ad hoc line item sent when creating a payment link."""

    name: str
    quantity: str  # Square expects a decimal string
    base_price_money: Money
    note: str = ""

    def to_api(self) -> dict[str, Any]:
        data = self.model_dump(exclude_none=True)
        if not data["note"]:
            del data["note"]
        return data


class SquarePaymentLink(BaseModel):
    """Result of creating a Square payment link."""

    id: str | None = None
    url: str
    order_id: str
