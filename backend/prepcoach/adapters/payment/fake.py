"""Fake payment gateway for testing.

In-memory implementation of PaymentGatewayProtocol.
Records all calls for assertions. No external API calls.
"""

import json
from typing import Any, Dict, Optional

from prepcoach.core.protocols.payment import CheckoutSessionResult
from prepcoach.domains.billing.exceptions import SignatureError, WebhookPayloadError


class FakePaymentGateway:
    """In-memory fake for PaymentGatewayProtocol."""

    VALID_SIGNATURE = "valid-signature"

    def __init__(self) -> None:
        """Initialize with empty stores and call log."""
        self._customers: dict[str, Dict[str, str]] = {}
        self._subscriptions: dict[str, Dict[str, Any]] = {}
        self._calls: list[tuple] = []
        self._failures: dict[str, list[Exception]] = {}

    # -- test helpers ---------------------------------------------------------

    def seed_subscription(self, subscription_id: str, subscription: Dict[str, Any]) -> None:
        """Make ``get_subscription`` return ``subscription``."""
        self._subscriptions[subscription_id] = subscription

    def fail_next(self, method: str, *errors: Exception) -> None:
        """Queue errors to raise on the next calls to ``method``."""
        self._failures.setdefault(method, []).extend(errors)

    def call_count(self, method: str) -> int:
        """Count how many times ``method`` was called."""
        return sum(1 for c in self._calls if c[0] == method)

    @property
    def customers(self) -> dict[str, Dict[str, str]]:
        """Created customers keyed by id."""
        return dict(self._customers)

    def _maybe_fail(self, method: str) -> None:
        queued = self._failures.get(method)
        if queued:
            raise queued.pop(0)

    # -- protocol -------------------------------------------------------------

    async def create_customer(
        self,
        *,
        user_id: str,
        metadata: Optional[Dict[str, str]] = None,
        idempotency_key: Optional[str] = None,
    ) -> str:
        """Create a fake customer."""
        self._calls.append(("create_customer", user_id, metadata, idempotency_key))
        self._maybe_fail("create_customer")
        customer_id = f"cus_{len(self._customers) + 1:04d}"
        self._customers[customer_id] = {**(metadata or {}), "userId": user_id}
        return customer_id

    async def get_subscription(self, subscription_id: str) -> Dict[str, Any]:
        """Return a seeded subscription."""
        self._calls.append(("get_subscription", subscription_id))
        self._maybe_fail("get_subscription")
        return self._subscriptions.get(subscription_id, {"id": subscription_id})

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
        """Return a fake checkout session."""
        self._calls.append(
            (
                "create_checkout_session",
                customer_id,
                price_id,
                success_url,
                cancel_url,
                metadata,
                client_reference_id,
            )
        )
        self._maybe_fail("create_checkout_session")
        n = self.call_count("create_checkout_session")
        return CheckoutSessionResult(
            session_id=f"cs_test_{n}",
            url=f"https://checkout.stripe.test/cs_test_{n}",
        )

    async def create_portal_session(self, *, customer_id: str, return_url: str) -> str:
        """Return a fake portal URL."""
        self._calls.append(("create_portal_session", customer_id, return_url))
        self._maybe_fail("create_portal_session")
        return f"https://billing.stripe.test/p/{customer_id}"

    def verify_webhook_signature(self, payload: bytes, signature: str) -> Dict[str, Any]:
        """Accept only ``VALID_SIGNATURE`` and decode the body as the event."""
        self._calls.append(("verify_webhook_signature", payload, signature))
        if signature != self.VALID_SIGNATURE:
            raise SignatureError("Signature mismatch")
        try:
            return json.loads(payload)
        except ValueError as e:
            raise WebhookPayloadError(f"Webhook body is not a valid event: {e}") from e
