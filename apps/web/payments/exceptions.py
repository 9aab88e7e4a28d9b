"""Payment provider exceptions."""


class PaymentProviderError(Exception):
    """Base exception for payment provider errors."""

    def __init__(self, message: str, provider: str | None = None) -> None:
        self.message = message
        self.provider = provider
        super().__init__(message)


class SquareAPIError(PaymentProviderError):
    """Request to the Square API failed."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ) -> None:
        super().__init__(message, provider="square")
        self.status_code = status_code
        self.response_body = response_body


class WebhookSignatureError(PaymentProviderError):
    """Webhook signature could not be checked (missing or malformed input)."""
