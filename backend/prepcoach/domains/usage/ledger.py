"""Usage ledger: per-user, per-period feature counters.

The ledger only counts. Whether a charge is allowed is decided by the
EntitlementEvaluator, which passes the ceiling the increment must respect.
"""

from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from prepcoach.core.logging import logger
from prepcoach.domains.billing.plans import FeatureType
from prepcoach.domains.usage.protocols import UsageLedgerProtocol
from prepcoach.domains.usage.repository import UsageCounterRepositoryProtocol
from prepcoach.domains.usage.types import period_key
from prepcoach.models import UsageCounter


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UsageLedger(UsageLedgerProtocol):
    """Counters over the usage repository, bucketed by calendar month."""

    def __init__(
        self,
        repo: UsageCounterRepositoryProtocol,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize with the counter repository and a clock."""
        self._repo = repo
        self._clock = clock

    def current_period(self) -> str:
        """Period key for the current moment."""
        return period_key(self._clock())

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
        return await self._repo.get_or_create(
            db,
            user_id=user_id,
            feature_type=feature_type.value,
            period_key=period,
            limit=limit,
        )

    async def peek(
        self, db: AsyncSession, *, user_id: str, feature_type: FeatureType, period: str
    ) -> Optional[UsageCounter]:
        """Counter for ``period`` if one exists."""
        return await self._repo.get(
            db, user_id=user_id, feature_type=feature_type.value, period_key=period
        )

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
        used = await self._repo.increment(
            db,
            user_id=user_id,
            feature_type=feature_type.value,
            period_key=period,
            count=count,
            ceiling=ceiling,
        )
        logger.with_context(user_id=user_id, feature_type=feature_type.value).debug(
            f"Usage record period={period} count={count} -> used={used}"
        )
        return used
