"""Usage domain protocols, split into counting (ledger) and deciding (evaluator).

UsageLedgerProtocol: atomic per-period counters, no policy.
EntitlementEvaluatorProtocol: plan-aware quota decisions and charging.
"""

from typing import Optional, Protocol, runtime_checkable

from sqlalchemy.ext.asyncio import AsyncSession

from prepcoach.domains.billing.plans import FeatureType
from prepcoach.domains.usage.types import UsageSnapshot
from prepcoach.models import UsageCounter


@runtime_checkable
class UsageLedgerProtocol(Protocol):
    """Per-user, per-period feature counters."""

    def current_period(self) -> str:
        """Period key for the current moment."""
        ...

    async def counter(
        self,
        db: AsyncSession,
        *,
        user_id: str,
        feature_type: FeatureType,
        period: str,
        limit: Optional[int],
    ) -> UsageCounter:
        """Counter for ``period``, created zeroed with ``limit`` on first use."""
        ...

    async def peek(
        self, db: AsyncSession, *, user_id: str, feature_type: FeatureType, period: str
    ) -> Optional[UsageCounter]:
        """Counter for ``period`` if one exists."""
        ...

    async def record(
        self,
        db: AsyncSession,
        *,
        user_id: str,
        feature_type: FeatureType,
        period: str,
        count: int,
        ceiling: Optional[int] = None,
    ) -> Optional[int]:
        """Add ``count`` units. Returns the new total, or None if the ceiling refused it."""
        ...


@runtime_checkable
class EntitlementEvaluatorProtocol(Protocol):
    """Answers "may this user use this feature now" and charges usage."""

    async def can_use(
        self, db: AsyncSession, *, user_id: str, feature_type: FeatureType, count: int = 1
    ) -> bool:
        """Whether ``count`` units of ``feature_type`` are within the user's entitlement."""
        ...

    async def charge(
        self, db: AsyncSession, *, user_id: str, feature_type: FeatureType, count: int = 1
    ) -> bool:
        """Consume ``count`` units. Returns False, without charging, if not allowed."""
        ...

    async def charge_or_raise(
        self, db: AsyncSession, *, user_id: str, feature_type: FeatureType, count: int = 1
    ) -> UsageSnapshot:
        """Consume ``count`` units or raise UsageLimitExceededError."""
        ...

    async def usage(
        self, db: AsyncSession, *, user_id: str, feature_type: FeatureType
    ) -> UsageSnapshot:
        """Current-period usage of ``feature_type``, without creating a counter."""
        ...
