"""Billing repositories and protocols.

SubscriptionRepository is the subscription store; ProcessedEventRepository
is the event idempotency log. Both write through single atomic statements
(``INSERT .. ON CONFLICT``) so concurrent webhook deliveries cannot lose
updates. Writes commit unless a UnitOfWork is passed, in which case they
only flush and the caller owns the transaction.
"""

from decimal import Decimal
from typing import Optional, Protocol

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from prepcoach.db.errors import translate_storage_errors
from prepcoach.db.unit_of_work import UnitOfWork
from prepcoach.domains.billing.plans import PlanId
from prepcoach.domains.billing.types import SubscriptionPatch, SubscriptionStatus
from prepcoach.models import ProcessedEvent, SubscriptionRecord


async def _finish(db: AsyncSession, uow: Optional[UnitOfWork]) -> None:
    if uow is None:
        await db.commit()
    else:
        await db.flush()


class SubscriptionRepositoryProtocol(Protocol):
    """Access to per-user subscription records."""

    async def get_by_user_id(
        self, db: AsyncSession, *, user_id: str
    ) -> Optional[SubscriptionRecord]:
        """Get the record for ``user_id``."""
        ...

    async def get_by_stripe_customer_id(
        self, db: AsyncSession, *, stripe_customer_id: str
    ) -> Optional[SubscriptionRecord]:
        """Get the record bound to a Stripe customer."""
        ...

    async def get_by_stripe_subscription_id(
        self, db: AsyncSession, *, stripe_subscription_id: str
    ) -> Optional[SubscriptionRecord]:
        """Get the record bound to a Stripe subscription."""
        ...

    async def upsert(
        self,
        db: AsyncSession,
        *,
        user_id: str,
        patch: SubscriptionPatch,
        uow: Optional[UnitOfWork] = None,
    ) -> SubscriptionRecord:
        """Insert or update the record for ``user_id`` in one statement."""
        ...

    async def bind_customer(
        self, db: AsyncSession, *, user_id: str, stripe_customer_id: str
    ) -> str:
        """Store ``stripe_customer_id`` unless one is already bound; return the bound id."""
        ...


class ProcessedEventRepositoryProtocol(Protocol):
    """Append-only log of processed external event ids."""

    async def exists(self, db: AsyncSession, *, event_id: str) -> bool:
        """Check whether ``event_id`` was already processed."""
        ...

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
        """Atomically record ``event_id``. Returns False if it already existed."""
        ...

    async def list_for_user(self, db: AsyncSession, *, user_id: str) -> list[ProcessedEvent]:
        """All processed events for ``user_id``, oldest first."""
        ...


class SubscriptionRepository(SubscriptionRepositoryProtocol):
    """PostgreSQL-backed subscription store."""

    @translate_storage_errors
    async def get_by_user_id(
        self, db: AsyncSession, *, user_id: str
    ) -> Optional[SubscriptionRecord]:
        """Get the record for ``user_id``."""
        return await db.get(SubscriptionRecord, user_id)

    @translate_storage_errors
    async def get_by_stripe_customer_id(
        self, db: AsyncSession, *, stripe_customer_id: str
    ) -> Optional[SubscriptionRecord]:
        """Get the record bound to a Stripe customer."""
        result = await db.execute(
            select(SubscriptionRecord).where(
                SubscriptionRecord.stripe_customer_id == stripe_customer_id
            )
        )
        return result.scalar_one_or_none()

    @translate_storage_errors
    async def get_by_stripe_subscription_id(
        self, db: AsyncSession, *, stripe_subscription_id: str
    ) -> Optional[SubscriptionRecord]:
        """Get the record bound to a Stripe subscription."""
        result = await db.execute(
            select(SubscriptionRecord)
            .where(SubscriptionRecord.stripe_subscription_id == stripe_subscription_id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    @translate_storage_errors
    async def upsert(
        self,
        db: AsyncSession,
        *,
        user_id: str,
        patch: SubscriptionPatch,
        uow: Optional[UnitOfWork] = None,
    ) -> SubscriptionRecord:
        """Insert or update the record for ``user_id`` in one statement.

        Only the fields present in ``patch`` are overwritten on conflict.
        """
        values = patch.as_values()
        insert_values = {
            "user_id": user_id,
            "plan_id": PlanId.FREE.value,
            "status": SubscriptionStatus.INCOMPLETE.value,
            "cancel_at_period_end": False,
            **values,
        }
        stmt = pg_insert(SubscriptionRecord).values(**insert_values)
        update_set = {name: stmt.excluded[name] for name in values}
        update_set["updated_at"] = func.now()
        stmt = stmt.on_conflict_do_update(
            index_elements=[SubscriptionRecord.user_id], set_=update_set
        ).returning(SubscriptionRecord)

        result = await db.scalars(stmt, execution_options={"populate_existing": True})
        record = result.one()
        await _finish(db, uow)
        return record

    @translate_storage_errors
    async def bind_customer(
        self, db: AsyncSession, *, user_id: str, stripe_customer_id: str
    ) -> str:
        """Store ``stripe_customer_id`` unless one is already bound; return the bound id.

        A user without a record gets one on the free plan in ``incomplete``
        status; it becomes ``active`` when checkout completes.
        """
        table = SubscriptionRecord.__table__
        stmt = pg_insert(SubscriptionRecord).values(
            user_id=user_id,
            plan_id=PlanId.FREE.value,
            status=SubscriptionStatus.INCOMPLETE.value,
            cancel_at_period_end=False,
            stripe_customer_id=stripe_customer_id,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[SubscriptionRecord.user_id],
            set_={
                "stripe_customer_id": func.coalesce(
                    table.c.stripe_customer_id, stmt.excluded.stripe_customer_id
                ),
                "updated_at": func.now(),
            },
        ).returning(table.c.stripe_customer_id)

        result = await db.execute(stmt)
        bound = result.scalar_one()
        await db.commit()
        return bound


class ProcessedEventRepository(ProcessedEventRepositoryProtocol):
    """PostgreSQL-backed idempotency log."""

    @translate_storage_errors
    async def exists(self, db: AsyncSession, *, event_id: str) -> bool:
        """Check whether ``event_id`` was already processed."""
        result = await db.execute(
            select(ProcessedEvent.event_id).where(ProcessedEvent.event_id == event_id)
        )
        return result.scalar_one_or_none() is not None

    @translate_storage_errors
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
        """Atomically record ``event_id``. Returns False if it already existed."""
        stmt = (
            pg_insert(ProcessedEvent)
            .values(
                event_id=event_id,
                type=event_type,
                user_id=user_id,
                amount=amount,
                plan=plan,
            )
            .on_conflict_do_nothing(index_elements=[ProcessedEvent.event_id])
            .returning(ProcessedEvent.__table__.c.event_id)
        )
        result = await db.execute(stmt)
        inserted = result.scalar_one_or_none() is not None
        await _finish(db, uow)
        return inserted

    @translate_storage_errors
    async def list_for_user(self, db: AsyncSession, *, user_id: str) -> list[ProcessedEvent]:
        """All processed events for ``user_id``, oldest first."""
        result = await db.execute(
            select(ProcessedEvent)
            .where(ProcessedEvent.user_id == user_id)
            .order_by(ProcessedEvent.processed_at.asc(), ProcessedEvent.event_id.asc())
        )
        return list(result.scalars().all())
