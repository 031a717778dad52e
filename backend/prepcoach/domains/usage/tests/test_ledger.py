"""Tests for UsageLedger period bucketing."""

from datetime import datetime, timezone

import pytest

from prepcoach.domains.billing.plans import FeatureType
from prepcoach.domains.usage.fakes.repository import FakeUsageCounterRepository
from prepcoach.domains.usage.ledger import UsageLedger
from prepcoach.domains.usage.tests.conftest import _make_db


class _Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class TestUsageLedger:
    @pytest.mark.asyncio
    async def test_period_rollover_starts_new_counter(self):
        repo = FakeUsageCounterRepository()
        clock = _Clock(datetime(2024, 1, 31, 23, 0, tzinfo=timezone.utc))
        ledger = UsageLedger(repo=repo, clock=clock)
        db = _make_db()

        january = ledger.current_period()
        await ledger.counter(
            db, user_id="U1", feature_type=FeatureType.QUESTION, period=january, limit=5
        )
        await ledger.record(
            db, user_id="U1", feature_type=FeatureType.QUESTION, period=january, count=3
        )
        clock.now = datetime(2024, 2, 1, 0, 5, tzinfo=timezone.utc)
        february = ledger.current_period()
        fresh = await ledger.counter(
            db, user_id="U1", feature_type=FeatureType.QUESTION, period=february, limit=5
        )

        assert (january, february) == ("2024-01", "2024-02")
        assert fresh.used == 0
        old = await ledger.peek(
            db, user_id="U1", feature_type=FeatureType.QUESTION, period=january
        )
        assert old.used == 3

    @pytest.mark.asyncio
    async def test_record_respects_ceiling(self):
        repo = FakeUsageCounterRepository()
        repo.seed("U1", "question", "2024-01", used=4, limit=5)
        ledger = UsageLedger(repo=repo)
        db = _make_db()

        refused = await ledger.record(
            db,
            user_id="U1",
            feature_type=FeatureType.QUESTION,
            period="2024-01",
            count=2,
            ceiling=5,
        )
        accepted = await ledger.record(
            db,
            user_id="U1",
            feature_type=FeatureType.QUESTION,
            period="2024-01",
            count=1,
            ceiling=5,
        )

        assert refused is None
        assert accepted == 5

    @pytest.mark.asyncio
    async def test_record_without_counter_is_noop(self):
        ledger = UsageLedger(repo=FakeUsageCounterRepository())

        result = await ledger.record(
            _make_db(), user_id="U1", feature_type=FeatureType.QUESTION, period="2024-01", count=1
        )

        assert result is None
