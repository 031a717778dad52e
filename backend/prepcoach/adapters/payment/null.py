"""Null payment gateway for when Stripe is not configured.

Satisfies PaymentGatewayProtocol so the container can always be fully
constructed. Every user-facing operation raises BillingNotAvailableError,
and webhook signatures never verify, so nothing reaches the subscription
store without a real billing platform behind it.
"""

from typing import Any, Optional

from prepcoach.core.protocols.payment import CheckoutSessionResult, PaymentGatewayProtocol
from prepcoach.domains.billing.exceptions import BillingNotAvailableError, SignatureError


class NullPaymentGateway(PaymentGatewayProtocol):
    """Payment gateway used when no Stripe key is configured."""

    async def create_customer(
        self,
        *,
        user_id: str,
        metadata: Optional[dict[str, str]] = None,
        idempotency_key: Optional[str] = None,
    ) -> str:
        """Not available without billing."""
        raise BillingNotAvailableError()

    async def get_subscription(self, subscription_id: str) -> dict[str, Any]:
        """Not available without billing."""
        raise BillingNotAvailableError()

    async def create_checkout_session(
        self,
        *,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        metadata: Optional[dict[str, str]] = None,
        client_reference_id: Optional[str] = None,
    ) -> CheckoutSessionResult:
        """Not available without billing."""
        raise BillingNotAvailableError()

    async def create_portal_session(self, *, customer_id: str, return_url: str) -> str:
        """Not available without billing."""
        raise BillingNotAvailableError()

    def verify_webhook_signature(self, payload: bytes, signature: str) -> dict[str, Any]:
        """No secret configured, so no signature is valid."""
        raise SignatureError("Webhook received but billing is not configured")
