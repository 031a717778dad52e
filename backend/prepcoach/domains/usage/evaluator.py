"""Entitlement evaluator.

Combines the subscription store with the usage ledger:

- premium-active users may use every feature and are never charged;
- free users get ``free_limit(feature)`` units per calendar month, where
  ``None`` means unmetered and ``0`` means premium-only.

``charge`` re-runs the check right before mutating and then performs the
increment with the counter's limit as ceiling, so the atomic update in the
store is what finally arbitrates concurrent charges.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from prepcoach.core.logging import logger
from prepcoach.domains.billing.plans import FeatureType, free_limit
from prepcoach.domains.billing.protocols import SubscriptionQueryProtocol
from prepcoach.domains.usage.exceptions import UsageLimitExceededError
from prepcoach.domains.usage.protocols import EntitlementEvaluatorProtocol, UsageLedgerProtocol
from prepcoach.domains.usage.types import UsageSnapshot, validate_count


@dataclass(frozen=True)
class _Decision:
    allowed: bool
    premium: bool
    period: str
    used: int = 0
    limit: Optional[int] = None


class EntitlementEvaluator(EntitlementEvaluatorProtocol):
    """Plan-aware quota checks and charging."""

    def __init__(
        self,
        ledger: UsageLedgerProtocol,
        subscriptions: SubscriptionQueryProtocol,
        free_question_limit: int,
    ) -> None:
        """Initialize with the ledger, subscription reads, and the free monthly quota."""
        self._ledger = ledger
        self._subscriptions = subscriptions
        self._free_question_limit = free_question_limit

    def _free_limit(self, feature_type: FeatureType) -> Optional[int]:
        return free_limit(feature_type, self._free_question_limit)

    async def _evaluate(
        self, db: AsyncSession, user_id: str, feature_type: FeatureType, count: int
    ) -> _Decision:
        period = self._ledger.current_period()
        if await self._subscriptions.is_premium(db, user_id=user_id):
            return _Decision(allowed=True, premium=True, period=period)

        counter = await self._ledger.counter(
            db,
            user_id=user_id,
            feature_type=feature_type,
            period=period,
            limit=self._free_limit(feature_type),
        )
        if counter.limit is None:
            return _Decision(allowed=True, premium=False, period=period, used=counter.used)
        remaining = counter.limit - counter.used
        return _Decision(
            allowed=remaining >= count,
            premium=False,
            period=period,
            used=counter.used,
            limit=counter.limit,
        )

    async def can_use(
        self, db: AsyncSession, *, user_id: str, feature_type: FeatureType, count: int = 1
    ) -> bool:
        """Whether ``count`` units of ``feature_type`` are within the user's entitlement.

        Creates this period's counter for free users if it does not exist yet.
        """
        validate_count(count)
        decision = await self._evaluate(db, user_id, feature_type, count)
        return decision.allowed

    async def charge(
        self, db: AsyncSession, *, user_id: str, feature_type: FeatureType, count: int = 1
    ) -> bool:
        """Consume ``count`` units. Returns False, without charging, if not allowed."""
        validate_count(count)
        return (await self._charge(db, user_id, feature_type, count)) is not None

    async def charge_or_raise(
        self, db: AsyncSession, *, user_id: str, feature_type: FeatureType, count: int = 1
    ) -> UsageSnapshot:
        """Consume ``count`` units or raise UsageLimitExceededError."""
        validate_count(count)
        snapshot = await self._charge(db, user_id, feature_type, count)
        if snapshot is None:
            current = await self.usage(db, user_id=user_id, feature_type=feature_type)
            raise UsageLimitExceededError(
                feature_type=feature_type.value,
                limit=current.limit,
                current_usage=current.used,
            )
        return snapshot

    async def _charge(
        self, db: AsyncSession, user_id: str, feature_type: FeatureType, count: int
    ) -> Optional[UsageSnapshot]:
        log = logger.with_context(user_id=user_id, feature_type=feature_type.value)
        decision = await self._evaluate(db, user_id, feature_type, count)
        if decision.premium:
            return UsageSnapshot(
                user_id=user_id,
                feature_type=feature_type.value,
                period_key=decision.period,
                used=decision.used,
                limit=None,
                is_premium=True,
            )
        if not decision.allowed:
            log.info(f"Charge refused: {decision.used}/{decision.limit} used, requested {count}")
            return None

        used = await self._ledger.record(
            db,
            user_id=user_id,
            feature_type=feature_type,
            period=decision.period,
            count=count,
            ceiling=decision.limit,
        )
        if used is None:
            # Counter moved between the check and the increment.
            log.info(f"Charge refused at increment, requested {count}")
            return None
        return UsageSnapshot(
            user_id=user_id,
            feature_type=feature_type.value,
            period_key=decision.period,
            used=used,
            limit=decision.limit,
            is_premium=False,
        )

    async def usage(
        self, db: AsyncSession, *, user_id: str, feature_type: FeatureType
    ) -> UsageSnapshot:
        """Current-period usage of ``feature_type``, without creating a counter."""
        period = self._ledger.current_period()
        premium = await self._subscriptions.is_premium(db, user_id=user_id)
        counter = await self._ledger.peek(
            db, user_id=user_id, feature_type=feature_type, period=period
        )
        used = counter.used if counter is not None else 0
        if premium:
            limit = None
        elif counter is not None:
            limit = counter.limit
        else:
            limit = self._free_limit(feature_type)
        return UsageSnapshot(
            user_id=user_id,
            feature_type=feature_type.value,
            period_key=period,
            used=used,
            limit=limit,
            is_premium=premium,
        )
