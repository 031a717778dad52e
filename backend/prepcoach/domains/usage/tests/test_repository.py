"""Statement-level tests for UsageCounterRepository.

The session is an AsyncMock; each test captures the statement handed to it
and compiles it for PostgreSQL to check the clauses that make counters atomic.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql

from prepcoach.domains.usage.repository import UsageCounterRepository
from prepcoach.domains.usage.tests.conftest import DEFAULT_USER_ID, PERIOD


def _session(scalar=None) -> AsyncMock:
    db = AsyncMock()
    result = MagicMock()
    result.scalar_one_or_none.return_value = scalar
    result.scalar_one.return_value = scalar
    db.execute.return_value = result
    return db


def _sql(stmt, literal: bool = False) -> str:
    compile_kwargs = {"literal_binds": True} if literal else {}
    return str(stmt.compile(dialect=postgresql.dialect(), compile_kwargs=compile_kwargs))


def _executed(db: AsyncMock, index: int = 0):
    return db.execute.call_args_list[index].args[0]


class TestIncrement:
    @pytest.mark.asyncio
    async def test_ceiling_guards_the_update(self):
        db = _session(scalar=3)

        used = await UsageCounterRepository().increment(
            db,
            user_id=DEFAULT_USER_ID,
            feature_type="question",
            period_key=PERIOD,
            count=1,
            ceiling=5,
        )

        sql = _sql(_executed(db), literal=True)
        assert used == 3
        set_clause, where_clause = sql.split(" WHERE ")
        assert set_clause.startswith("UPDATE usage_counters SET")
        assert "usage_counters.used + 1" in set_clause
        assert "usage_counters.used + 1 <= 5" in where_clause
        assert "usage_counters.user_id = 'U1'" in where_clause
        assert f"usage_counters.period_key = '{PERIOD}'" in where_clause
        assert sql.endswith("RETURNING usage_counters.used")
        db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_refused_charge_returns_none(self):
        db = _session(scalar=None)

        used = await UsageCounterRepository().increment(
            db,
            user_id=DEFAULT_USER_ID,
            feature_type="question",
            period_key=PERIOD,
            count=2,
            ceiling=5,
        )

        assert used is None

    @pytest.mark.asyncio
    async def test_unbounded_increment_has_no_ceiling(self):
        db = _session(scalar=7)

        await UsageCounterRepository().increment(
            db,
            user_id=DEFAULT_USER_ID,
            feature_type="analysis",
            period_key=PERIOD,
            count=1,
        )

        sql = _sql(_executed(db), literal=True)
        assert "<=" not in sql
        assert "RETURNING usage_counters.used" in sql


class TestGetOrCreate:
    @pytest.mark.asyncio
    async def test_creation_skips_existing_counter(self):
        counter = MagicMock()
        db = _session(scalar=counter)

        result = await UsageCounterRepository().get_or_create(
            db,
            user_id=DEFAULT_USER_ID,
            feature_type="question",
            period_key=PERIOD,
            limit=5,
        )

        insert_sql = _sql(_executed(db, 0))
        assert result is counter
        assert insert_sql.startswith("INSERT INTO usage_counters")
        assert "ON CONFLICT ON CONSTRAINT uq_usage_counter_key DO NOTHING" in insert_sql
        assert "DO UPDATE" not in insert_sql
        assert _sql(_executed(db, 1)).startswith("SELECT")
