"""Usage counter repository and protocol.

Counters are keyed by ``(user_id, feature_type, period_key)``. Creation is an
``INSERT .. ON CONFLICT DO NOTHING`` and charging is a single conditional
``UPDATE .. RETURNING``, so concurrent requests for the same user never
lose an increment or push ``used`` past the ceiling.
"""

from typing import Optional, Protocol

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from prepcoach.db.errors import translate_storage_errors
from prepcoach.models import UsageCounter


class UsageCounterRepositoryProtocol(Protocol):
    """Atomic access to per-period usage counters."""

    async def get(
        self, db: AsyncSession, *, user_id: str, feature_type: str, period_key: str
    ) -> Optional[UsageCounter]:
        """Get a counter without creating it."""
        ...

    async def get_or_create(
        self,
        db: AsyncSession,
        *,
        user_id: str,
        feature_type: str,
        period_key: str,
        limit: Optional[int],
    ) -> UsageCounter:
        """Get the counter, creating a zeroed one with ``limit`` if absent."""
        ...

    async def increment(
        self,
        db: AsyncSession,
        *,
        user_id: str,
        feature_type: str,
        period_key: str,
        count: int,
        ceiling: Optional[int] = None,
    ) -> Optional[int]:
        """Atomically add ``count`` to ``used``.

        With a ``ceiling`` the increment only happens if the result stays
        within it. Returns the new ``used`` value, or None if nothing changed.
        """
        ...


class UsageCounterRepository(UsageCounterRepositoryProtocol):
    """PostgreSQL-backed usage counters."""

    @staticmethod
    def _key(user_id: str, feature_type: str, period_key: str) -> tuple:
        return (
            UsageCounter.user_id == user_id,
            UsageCounter.feature_type == feature_type,
            UsageCounter.period_key == period_key,
        )

    @translate_storage_errors
    async def get(
        self, db: AsyncSession, *, user_id: str, feature_type: str, period_key: str
    ) -> Optional[UsageCounter]:
        """Get a counter without creating it."""
        result = await db.execute(
            select(UsageCounter)
            .where(*self._key(user_id, feature_type, period_key))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @translate_storage_errors
    async def get_or_create(
        self,
        db: AsyncSession,
        *,
        user_id: str,
        feature_type: str,
        period_key: str,
        limit: Optional[int],
    ) -> UsageCounter:
        """Get the counter, creating a zeroed one with ``limit`` if absent.

        An existing counter keeps the limit it was created with.
        """
        stmt = (
            pg_insert(UsageCounter)
            .values(
                user_id=user_id,
                feature_type=feature_type,
                period_key=period_key,
                used=0,
                limit=limit,
            )
            .on_conflict_do_nothing(constraint="uq_usage_counter_key")
        )
        await db.execute(stmt)
        result = await db.execute(
            select(UsageCounter)
            .where(*self._key(user_id, feature_type, period_key))
            .execution_options(populate_existing=True)
        )
        counter = result.scalar_one()
        await db.commit()
        return counter

    @translate_storage_errors
    async def increment(
        self,
        db: AsyncSession,
        *,
        user_id: str,
        feature_type: str,
        period_key: str,
        count: int,
        ceiling: Optional[int] = None,
    ) -> Optional[int]:
        """Atomically add ``count`` to ``used``, bounded by ``ceiling`` if given."""
        stmt = (
            update(UsageCounter)
            .where(*self._key(user_id, feature_type, period_key))
            .values(used=UsageCounter.used + count)
            .returning(UsageCounter.used)
            .execution_options(synchronize_session=False)
        )
        if ceiling is not None:
            stmt = stmt.where(UsageCounter.used + count <= ceiling)
        result = await db.execute(stmt)
        new_used = result.scalar_one_or_none()
        await db.commit()
        return new_used
