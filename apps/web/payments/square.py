"""Square client - order lookup, online checkout and webhook signatures."""

import base64
import binascii
import hashlib
import hmac
import logging
import uuid
from typing import Any

from django.conf import settings

import httpx
from ordering_schemas import SquareLineItem, SquareOrder, SquarePaymentLink

from apps.web.payments.exceptions import SquareAPIError, WebhookSignatureError

logger = logging.getLogger(__name__)

# Square API version - update periodically
SQUARE_API_VERSION = "2025-04-16"


class SquareClient:
    """
    Thin Square REST client.

    Covers what ordering needs:
    - Order lookup (authoritative state for webhook reconciliation)
    - Payment links (hosted checkout for a cart)
    - Webhook signature verification

    Requests are not retried here; callers surface failures so that Square
    retries the webhook delivery.

    API Reference: https://developer.squareup.com/reference/square
    """

    SANDBOX_BASE_URL = "https://connect.squareupsandbox.com"
    PROD_BASE_URL = "https://connect.squareup.com"

    def __init__(
        self,
        access_token: str,
        environment: str = "sandbox",
        http_client: httpx.Client | None = None,
    ) -> None:
        """
        Initialize the Square client.

        Args:
            access_token: Square access token.
            environment: "production" selects the live API, anything else
                the sandbox.
            http_client: Optional HTTP client for dependency injection (testing).
        """
        self._access_token = access_token
        self._sandbox = environment != "production"
        self._base_url = self.SANDBOX_BASE_URL if self._sandbox else self.PROD_BASE_URL
        self._client = http_client or httpx.Client(timeout=30.0)
        self._owns_client = http_client is None

    def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "SquareClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def base_url(self) -> str:
        return self._base_url

    # =========================================================================
    # HTTP Helpers
    # =========================================================================

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """
        Make an authenticated request to the Square API.

        Raises:
            SquareAPIError: On transport errors or non-2xx responses.
        """
        headers = {
            "Authorization": f"Bearer {self._access_token}",
            "Square-Version": SQUARE_API_VERSION,
            "Content-Type": "application/json",
        }

        try:
            response = self._client.request(
                method, f"{self._base_url}{path}", headers=headers, **kwargs
            )
        except httpx.RequestError as e:
            raise SquareAPIError(f"Square request failed: {e}") from e

        if response.is_error:
            raise SquareAPIError(
                f"Square API returned {response.status_code}: "
                f"{_error_detail(response)}",
                status_code=response.status_code,
                response_body=response.text,
            )

        return response

    # =========================================================================
    # Orders
    # =========================================================================

    def retrieve_order(self, order_id: str) -> SquareOrder | None:
        """
        Fetch an order by ID.

        Args:
            order_id: Square order ID.

        Returns:
            The order, or None if Square does not know it.

        Raises:
            SquareAPIError: If the request fails for any other reason.
        """
        try:
            response = self._request("GET", f"/v2/orders/{order_id}")
        except SquareAPIError as e:
            if e.status_code == 404:
                return None
            raise

        data = response.json().get("order")
        if not data:
            return None
        return SquareOrder.model_validate(data)

    # =========================================================================
    # Online Checkout
    # =========================================================================

    def create_payment_link(
        self,
        location_id: str,
        line_items: list[SquareLineItem],
        metadata: dict[str, str],
        redirect_url: str,
        buyer_email: str | None = None,
    ) -> SquarePaymentLink:
        """
        Create a hosted checkout link for a new order.

        The order metadata travels with the order and comes back when the
        payment webhook fetches it.

        Args:
            location_id: Square location taking the order.
            line_items: Priced line items.
            metadata: String key/value metadata to attach to the order.
            redirect_url: Where Square sends the buyer after paying.
            buyer_email: Optional email to pre-populate.

        Returns:
            The payment link with its checkout URL and Square order ID.

        Raises:
            SquareAPIError: If the link could not be created.
        """
        body: dict[str, Any] = {
            "idempotency_key": str(uuid.uuid4()),
            "order": {
                "location_id": location_id,
                "line_items": [item.to_api() for item in line_items],
                "metadata": metadata,
            },
            "checkout_options": {
                "allow_tipping": False,
                "redirect_url": redirect_url,
                "ask_for_shipping_address": False,
            },
        }
        if buyer_email:
            body["pre_populated_data"] = {"buyer_email": buyer_email}

        response = self._request(
            "POST", "/v2/online-checkout/payment-links", json=body
        )
        link = response.json().get("payment_link") or {}

        if not link.get("url") or not link.get("order_id"):
            raise SquareAPIError("Square payment link response missing url/order_id")

        return SquarePaymentLink.model_validate(link)

    # =========================================================================
    # Webhook Handling
    # =========================================================================

    @staticmethod
    def verify_webhook_signature(
        payload: bytes,
        signature: str,
        signature_key: str,
        notification_url: str,
    ) -> bool:
        """
        Verify a Square webhook signature.

        Square signs HMAC-SHA256(signature_key, notification_url + body) and
        sends it base64-encoded in x-square-hmacsha256-signature.

        Args:
            payload: Raw webhook payload bytes.
            signature: Value of the signature header.
            signature_key: Webhook signature key from the Square dashboard.
            notification_url: The URL Square was configured to call.

        Returns:
            True if the signature matches.

        Raises:
            WebhookSignatureError: If the inputs cannot be verified at all.
        """
        if not signature:
            raise WebhookSignatureError("Missing signature header", provider="square")
        if not signature_key or not notification_url:
            raise WebhookSignatureError(
                "Signature key and notification URL are required", provider="square"
            )

        try:
            received = base64.b64decode(signature, validate=True)
        except (binascii.Error, ValueError) as e:
            raise WebhookSignatureError(
                f"Malformed signature header: {e}", provider="square"
            ) from e

        combined = notification_url.encode() + payload
        expected = hmac.new(signature_key.encode(), combined, hashlib.sha256).digest()

        return hmac.compare_digest(received, expected)


def _error_detail(response: httpx.Response) -> str:
    """Summarise Square's error array, falling back to the raw body."""
    try:
        errors = response.json().get("errors", [])
    except ValueError:
        return response.text[:200]

    return "; ".join(
        f"{e.get('category')} - {e.get('code')}: {e.get('detail')}" for e in errors
    ) or response.text[:200]


def get_square_client() -> SquareClient:
    """Build a Square client from settings."""
    return SquareClient(
        access_token=settings.SQUARE_ACCESS_TOKEN,
        environment=settings.SQUARE_ENVIRONMENT,
    )
