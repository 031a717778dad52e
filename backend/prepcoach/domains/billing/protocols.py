"""Billing domain protocols.

BillingWebhookProtocol: single method for webhook event processing.
CheckoutBrokerProtocol: checkout and customer portal sessions.
SubscriptionQueryProtocol: read models for plan state and analytics.
"""

from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable

from sqlalchemy.ext.asyncio import AsyncSession

from prepcoach.core.protocols.payment import CheckoutSessionResult
from prepcoach.domains.billing.types import SubscriptionAnalytics, SubscriptionSnapshot


@dataclass(frozen=True)
class WebhookResult:
    """Outcome of processing one delivery."""

    accepted: bool
    event_id: Optional[str] = None
    event_type: Optional[str] = None
    duplicate: bool = False
    applied: bool = False


@runtime_checkable
class BillingWebhookProtocol(Protocol):
    """Webhook processing interface: verifies signature and processes event."""

    async def process_webhook(
        self, db: AsyncSession, payload: bytes, signature: str
    ) -> WebhookResult:
        """Verify webhook signature and process the resulting event."""
        ...


@runtime_checkable
class CheckoutBrokerProtocol(Protocol):
    """Creates hosted checkout and billing portal sessions for a user."""

    async def create_checkout_session(
        self,
        db: AsyncSession,
        *,
        user_id: str,
        price_id: str,
        success_url: Optional[str] = None,
        cancel_url: Optional[str] = None,
    ) -> CheckoutSessionResult:
        """Start a subscription checkout for ``user_id``."""
        ...

    async def create_portal_session(
        self, db: AsyncSession, *, user_id: str, return_url: Optional[str] = None
    ) -> str:
        """Open the billing portal for ``user_id``. Returns the portal URL."""
        ...


@runtime_checkable
class SubscriptionQueryProtocol(Protocol):
    """Read-only subscription views."""

    async def get_subscription(self, db: AsyncSession, *, user_id: str) -> SubscriptionSnapshot:
        """Effective subscription for ``user_id``; free plan when no record exists."""
        ...

    async def is_premium(self, db: AsyncSession, *, user_id: str) -> bool:
        """Whether ``user_id`` is active on a paid plan."""
        ...

    async def get_analytics(self, db: AsyncSession, *, user_id: str) -> SubscriptionAnalytics:
        """Summary of the user's processed billing events."""
        ...
