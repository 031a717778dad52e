"""Fake billing repositories for testing."""

import asyncio
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from prepcoach.db.unit_of_work import UnitOfWork
from prepcoach.domains.billing.plans import PlanId
from prepcoach.domains.billing.types import SubscriptionPatch, SubscriptionStatus
from prepcoach.models import ProcessedEvent, SubscriptionRecord


class FakeSubscriptionRepository:
    """In-memory fake for SubscriptionRepositoryProtocol."""

    def __init__(self) -> None:
        """Initialize with empty store and call log."""
        self._store: dict[str, SubscriptionRecord] = {}
        self._calls: list[tuple] = []
        self._upsert_error: Optional[Exception] = None

    def seed(self, user_id: str, obj: SubscriptionRecord) -> None:
        """Populate store with test data."""
        self._store[user_id] = obj

    def fail_upsert_with(self, error: Optional[Exception]) -> None:
        """Make subsequent upserts raise ``error``."""
        self._upsert_error = error

    def call_count(self, method: str) -> int:
        """Count calls to ``method``."""
        return sum(1 for c in self._calls if c[0] == method)

    async def get_by_user_id(
        self, db: AsyncSession, *, user_id: str
    ) -> Optional[SubscriptionRecord]:
        """Get the record for ``user_id``."""
        self._calls.append(("get_by_user_id", db, user_id))
        return self._store.get(user_id)

    async def get_by_stripe_customer_id(
        self, db: AsyncSession, *, stripe_customer_id: str
    ) -> Optional[SubscriptionRecord]:
        """Get the record bound to a Stripe customer."""
        self._calls.append(("get_by_stripe_customer_id", db, stripe_customer_id))
        for obj in self._store.values():
            if obj.stripe_customer_id == stripe_customer_id:
                return obj
        return None

    async def get_by_stripe_subscription_id(
        self, db: AsyncSession, *, stripe_subscription_id: str
    ) -> Optional[SubscriptionRecord]:
        """Get the record bound to a Stripe subscription."""
        self._calls.append(("get_by_stripe_subscription_id", db, stripe_subscription_id))
        for obj in self._store.values():
            if obj.stripe_subscription_id == stripe_subscription_id:
                return obj
        return None

    async def upsert(
        self,
        db: AsyncSession,
        *,
        user_id: str,
        patch: SubscriptionPatch,
        uow: Optional[UnitOfWork] = None,
    ) -> SubscriptionRecord:
        """Insert or patch the record (fake)."""
        self._calls.append(("upsert", db, user_id, patch, uow))
        if self._upsert_error is not None:
            raise self._upsert_error
        record = self._store.get(user_id)
        if record is None:
            record = SubscriptionRecord(
                user_id=user_id,
                plan_id=PlanId.FREE.value,
                status=SubscriptionStatus.INCOMPLETE.value,
                cancel_at_period_end=False,
            )
            self._store[user_id] = record
        for key, value in patch.as_values().items():
            setattr(record, key, value)
        record.updated_at = datetime.now(timezone.utc)
        return record

    async def bind_customer(
        self, db: AsyncSession, *, user_id: str, stripe_customer_id: str
    ) -> str:
        """Bind a customer unless one is already bound (fake)."""
        self._calls.append(("bind_customer", db, user_id, stripe_customer_id))
        record = self._store.get(user_id)
        if record is None:
            record = SubscriptionRecord(
                user_id=user_id,
                plan_id=PlanId.FREE.value,
                status=SubscriptionStatus.INCOMPLETE.value,
                cancel_at_period_end=False,
            )
            self._store[user_id] = record
        if not record.stripe_customer_id:
            record.stripe_customer_id = stripe_customer_id
        return record.stripe_customer_id


class FakeProcessedEventRepository:
    """In-memory fake for ProcessedEventRepositoryProtocol.

    ``insert_if_absent`` is serialized by a lock to mirror the atomic
    conditional insert of the real table.
    """

    def __init__(self) -> None:
        """Initialize with empty log."""
        self._store: dict[str, ProcessedEvent] = {}
        self._calls: list[tuple] = []
        self._lock = asyncio.Lock()

    def seed(self, event: ProcessedEvent) -> None:
        """Populate log with test data."""
        self._store[event.event_id] = event

    def call_count(self, method: str) -> int:
        """Count calls to ``method``."""
        return sum(1 for c in self._calls if c[0] == method)

    @property
    def events(self) -> list[ProcessedEvent]:
        """Logged events in insertion order."""
        return list(self._store.values())

    async def exists(self, db: AsyncSession, *, event_id: str) -> bool:
        """Check whether ``event_id`` was already processed."""
        self._calls.append(("exists", db, event_id))
        return event_id in self._store

    async def insert_if_absent(
        self,
        db: AsyncSession,
        *,
        event_id: str,
        event_type: str,
        user_id: Optional[str],
        amount: Optional[Decimal] = None,
        plan: Optional[str] = None,
        uow: Optional[UnitOfWork] = None,
    ) -> bool:
        """Record ``event_id`` unless present (fake)."""
        self._calls.append(("insert_if_absent", db, event_id, uow))
        async with self._lock:
            if event_id in self._store:
                return False
            self._store[event_id] = ProcessedEvent(
                event_id=event_id,
                type=event_type,
                user_id=user_id,
                amount=amount,
                plan=plan,
                processed_at=datetime.now(timezone.utc),
            )
            return True

    async def list_for_user(self, db: AsyncSession, *, user_id: str) -> list[ProcessedEvent]:
        """All events for ``user_id`` in insertion order."""
        self._calls.append(("list_for_user", db, user_id))
        return [e for e in self._store.values() if e.user_id == user_id]
