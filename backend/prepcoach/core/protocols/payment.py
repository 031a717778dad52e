"""Payment gateway protocol.

Cross-cutting infrastructure protocol for the billing platform (Stripe).
Implementations translate SDK failures into ``UpstreamRetryableError`` /
``UpstreamFatalError`` so callers can wrap them in a ``ResilientInvoker``.

Direct consumers: CheckoutBroker, WebhookProcessor.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, runtime_checkable


@dataclass(frozen=True)
class CheckoutSessionResult:
    """Identifier and redirect URL of a hosted checkout session."""

    session_id: str
    url: str


@runtime_checkable
class PaymentGatewayProtocol(Protocol):
    """Protocol for payment gateway operations."""

    # -------------------------------------------------------------------------
    # Customer operations
    # -------------------------------------------------------------------------

    async def create_customer(
        self,
        *,
        user_id: str,
        metadata: Optional[Dict[str, str]] = None,
        idempotency_key: Optional[str] = None,
    ) -> str:
        """Create a customer bound to ``user_id`` and return its id."""
        ...

    # -------------------------------------------------------------------------
    # Subscription operations
    # -------------------------------------------------------------------------

    async def get_subscription(self, subscription_id: str) -> Dict[str, Any]:
        """Retrieve a subscription as a plain dict."""
        ...

    # -------------------------------------------------------------------------
    # Checkout / portal operations
    # -------------------------------------------------------------------------

    async def create_checkout_session(
        self,
        *,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        metadata: Optional[Dict[str, str]] = None,
        client_reference_id: Optional[str] = None,
    ) -> CheckoutSessionResult:
        """Create a subscription-mode checkout session."""
        ...

    async def create_portal_session(self, *, customer_id: str, return_url: str) -> str:
        """Create a customer portal session and return its URL."""
        ...

    # -------------------------------------------------------------------------
    # Webhook operations
    # -------------------------------------------------------------------------

    def verify_webhook_signature(self, payload: bytes, signature: str) -> Dict[str, Any]:
        """Verify ``signature`` over ``payload`` and construct the webhook event.

        Returns:
            The verified event as a plain dict.

        Raises:
            SignatureError: The header is missing, malformed, does not match,
                or its timestamp is outside the tolerance window.
            WebhookPayloadError: The body is not a JSON event.
        """
        ...
