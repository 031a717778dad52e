"""Stripe payment gateway adapter.

Implements PaymentGatewayProtocol with the official ``stripe`` SDK. SDK
calls are blocking, so each one runs in a worker thread. The API key is
passed per call; nothing is written to the ``stripe`` module globals.
"""

import asyncio
import functools
import json
from typing import Any, Callable, Dict, Optional, TypeVar

import stripe

from prepcoach.core.exceptions import UpstreamFatalError, UpstreamRetryableError
from prepcoach.core.logging import logger
from prepcoach.core.protocols.payment import CheckoutSessionResult
from prepcoach.domains.billing.exceptions import SignatureError, WebhookPayloadError

T = TypeVar("T")

SERVICE_NAME = "Stripe"


def _translate_stripe_error(exc: stripe.StripeError) -> Exception:
    """Map an SDK error onto the retryable / fatal upstream taxonomy."""
    status = exc.http_status
    message = exc.user_message or str(exc)
    if isinstance(exc, (stripe.RateLimitError, stripe.APIConnectionError)):
        return UpstreamRetryableError(SERVICE_NAME, status or 503, message)
    if status is not None and (status == 429 or status >= 500):
        return UpstreamRetryableError(SERVICE_NAME, status, message)
    return UpstreamFatalError(SERVICE_NAME, status, message)


class StripePaymentGateway:
    """Stripe-backed payment gateway."""

    def __init__(self, api_key: str, webhook_secret: str, webhook_tolerance_seconds: int = 300):
        """Initialize with credentials and the webhook replay window."""
        self._api_key = api_key
        self._webhook_secret = webhook_secret
        self._tolerance = webhook_tolerance_seconds

    async def _call(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        try:
            return await asyncio.to_thread(
                functools.partial(fn, *args, api_key=self._api_key, **kwargs)
            )
        except stripe.StripeError as e:
            raise _translate_stripe_error(e) from e

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
        """Create a customer tagged with ``metadata.userId``."""
        params: Dict[str, Any] = {"metadata": {**(metadata or {}), "userId": user_id}}
        if idempotency_key:
            params["idempotency_key"] = idempotency_key
        customer = await self._call(stripe.Customer.create, **params)
        logger.with_context(user_id=user_id).info(f"Created Stripe customer {customer.id}")
        return customer.id

    # -------------------------------------------------------------------------
    # Subscription operations
    # -------------------------------------------------------------------------

    async def get_subscription(self, subscription_id: str) -> Dict[str, Any]:
        """Retrieve a subscription as a plain, recursively converted dict."""
        subscription = await self._call(stripe.Subscription.retrieve, subscription_id)
        return json.loads(str(subscription))

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
        params: Dict[str, Any] = {
            "mode": "subscription",
            "customer": customer_id,
            "line_items": [{"price": price_id, "quantity": 1}],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata or {},
            "subscription_data": {"metadata": metadata or {}},
        }
        if client_reference_id:
            params["client_reference_id"] = client_reference_id
        session = await self._call(stripe.checkout.Session.create, **params)
        return CheckoutSessionResult(session_id=session.id, url=session.url)

    async def create_portal_session(self, *, customer_id: str, return_url: str) -> str:
        """Create a billing portal session and return its URL."""
        session = await self._call(
            stripe.billing_portal.Session.create,
            customer=customer_id,
            return_url=return_url,
        )
        return session.url

    # -------------------------------------------------------------------------
    # Webhook operations
    # -------------------------------------------------------------------------

    def verify_webhook_signature(self, payload: bytes, signature: str) -> Dict[str, Any]:
        """Check the ``Stripe-Signature`` header and construct the event it signs."""
        if not signature:
            raise SignatureError("Missing Stripe-Signature header")
        try:
            event = stripe.Webhook.construct_event(
                payload, signature, self._webhook_secret, self._tolerance
            )
        except stripe.SignatureVerificationError as e:
            raise SignatureError(str(e)) from e
        except ValueError as e:
            raise WebhookPayloadError(f"Webhook body is not a valid event: {e}") from e
        return event.to_dict()
