"""Subscription read models: effective plan, premium check, analytics."""

from sqlalchemy.ext.asyncio import AsyncSession

from prepcoach.domains.billing.plans import PlanId
from prepcoach.domains.billing.protocols import SubscriptionQueryProtocol
from prepcoach.domains.billing.repository import (
    ProcessedEventRepositoryProtocol,
    SubscriptionRepositoryProtocol,
)
from prepcoach.domains.billing.types import (
    SubscriptionAnalytics,
    SubscriptionSnapshot,
    SubscriptionStatus,
    compute_analytics,
    is_premium,
)


class SubscriptionQueryService(SubscriptionQueryProtocol):
    """Read-only views over the subscription store and event log."""

    def __init__(
        self,
        subscription_repo: SubscriptionRepositoryProtocol,
        event_repo: ProcessedEventRepositoryProtocol,
    ) -> None:
        """Initialize with repositories."""
        self._subscription_repo = subscription_repo
        self._event_repo = event_repo

    async def get_subscription(self, db: AsyncSession, *, user_id: str) -> SubscriptionSnapshot:
        """Effective subscription; a user without a record is active on the free plan."""
        record = await self._subscription_repo.get_by_user_id(db, user_id=user_id)
        if record is None:
            return SubscriptionSnapshot(
                user_id=user_id,
                plan_id=PlanId.FREE.value,
                status=SubscriptionStatus.ACTIVE.value,
                current_period_start=None,
                current_period_end=None,
                cancel_at_period_end=False,
            )
        return SubscriptionSnapshot(
            user_id=record.user_id,
            plan_id=record.plan_id,
            status=record.status,
            current_period_start=record.current_period_start,
            current_period_end=record.current_period_end,
            cancel_at_period_end=bool(record.cancel_at_period_end),
            stripe_customer_id=record.stripe_customer_id,
        )

    async def is_premium(self, db: AsyncSession, *, user_id: str) -> bool:
        """Whether ``user_id`` is active on a paid plan."""
        record = await self._subscription_repo.get_by_user_id(db, user_id=user_id)
        if record is None:
            return False
        return is_premium(record.plan_id, record.status)

    async def get_analytics(self, db: AsyncSession, *, user_id: str) -> SubscriptionAnalytics:
        """Summary of the user's processed billing events."""
        events = await self._event_repo.list_for_user(db, user_id=user_id)
        return compute_analytics(user_id, events)
