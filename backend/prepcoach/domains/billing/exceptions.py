"""Billing domain exceptions."""

import functools

from prepcoach.core.exceptions import (
    ExternalServiceError,
    InvalidStateError,
    NotFoundException,
    PrepCoachException,
    UpstreamFatalError,
    ValidationError,
)


class BillingNotFoundError(NotFoundException):
    """Raised when a billing record or customer identity is not found."""

    def __init__(self, message: str = "Billing record not found"):
        """Initialize with default message."""
        super().__init__(message)


class BillingNotAvailableError(InvalidStateError):
    """Raised by NullPaymentGateway when billing is not configured."""

    def __init__(self, message: str = "Billing is not enabled for this instance"):
        """Initialize with default message."""
        super().__init__(message)


class SignatureError(ValidationError):
    """Raised when a webhook signature header fails verification."""

    def __init__(self, message: str = "Invalid webhook signature"):
        """Initialize with default message."""
        super().__init__(message)


class WebhookPayloadError(PrepCoachException):
    """Raised when a verified webhook body cannot be interpreted.

    Answered with a server error so the sender redelivers.
    """

    def __init__(self, message: str = "Malformed webhook payload"):
        """Initialize with default message."""
        self.message = message
        super().__init__(message)


class PaymentGatewayError(ExternalServiceError):
    """Wraps a fatal payment adapter failure at the domain boundary."""

    def __init__(self, message: str = "Payment gateway error"):
        """Initialize with default message."""
        super().__init__(service_name="PaymentGateway", message=message)


def wrap_gateway_errors(fn):
    """Decorator: catch UpstreamFatalError from the payment gateway, wrap as PaymentGatewayError.

    Retry exhaustion and cancellation pass through untouched so the API
    layer can answer 503 / 504 for them.
    """

    @functools.wraps(fn)
    async def wrapper(*args, **kwargs):
        try:
            return await fn(*args, **kwargs)
        except UpstreamFatalError as e:
            raise PaymentGatewayError(message=e.message) from e

    return wrapper
