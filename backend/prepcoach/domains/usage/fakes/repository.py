"""Fake usage counter repository for testing."""

import asyncio
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from prepcoach.models import UsageCounter

_Key = tuple[str, str, str]


class FakeUsageCounterRepository:
    """In-memory fake for UsageCounterRepositoryProtocol.

    Each key has its own lock so increments are atomic, mirroring the
    single conditional UPDATE of the real table. Reads yield to the event
    loop first so concurrent callers interleave between check and charge.
    """

    def __init__(self) -> None:
        """Initialize with empty store and call log."""
        self._store: dict[_Key, UsageCounter] = {}
        self._locks: dict[_Key, asyncio.Lock] = {}
        self._calls: list[tuple] = []
        self._next_id = 1

    def _lock_for(self, key: _Key) -> asyncio.Lock:
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    def seed(
        self,
        user_id: str,
        feature_type: str,
        period_key: str,
        *,
        used: int = 0,
        limit: Optional[int] = None,
    ) -> UsageCounter:
        """Populate store with a counter."""
        now = datetime.now(timezone.utc)
        counter = UsageCounter(
            id=self._next_id,
            user_id=user_id,
            feature_type=feature_type,
            period_key=period_key,
            used=used,
            limit=limit,
            created_at=now,
            updated_at=now,
        )
        self._next_id += 1
        self._store[(user_id, feature_type, period_key)] = counter
        return counter

    def call_count(self, method: str) -> int:
        """Count calls to ``method``."""
        return sum(1 for c in self._calls if c[0] == method)

    @property
    def counters(self) -> list[UsageCounter]:
        """All counters in creation order."""
        return list(self._store.values())

    async def get(
        self, db: AsyncSession, *, user_id: str, feature_type: str, period_key: str
    ) -> Optional[UsageCounter]:
        """Get a counter without creating it."""
        self._calls.append(("get", db, user_id, feature_type, period_key))
        return self._store.get((user_id, feature_type, period_key))

    async def get_or_create(
        self,
        db: AsyncSession,
        *,
        user_id: str,
        feature_type: str,
        period_key: str,
        limit: Optional[int],
    ) -> UsageCounter:
        """Get the counter, creating a zeroed one with ``limit`` if absent (fake)."""
        self._calls.append(("get_or_create", db, user_id, feature_type, period_key, limit))
        await asyncio.sleep(0)
        key = (user_id, feature_type, period_key)
        async with self._lock_for(key):
            counter = self._store.get(key)
            if counter is None:
                counter = self.seed(user_id, feature_type, period_key, limit=limit)
        return counter

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
        """Add ``count`` to ``used`` unless it would pass ``ceiling`` (fake)."""
        self._calls.append(("increment", db, user_id, feature_type, period_key, count, ceiling))
        key = (user_id, feature_type, period_key)
        async with self._lock_for(key):
            counter = self._store.get(key)
            if counter is None:
                return None
            await asyncio.sleep(0)
            new_used = counter.used + count
            if ceiling is not None and new_used > ceiling:
                return None
            counter.used = new_used
            return new_used
