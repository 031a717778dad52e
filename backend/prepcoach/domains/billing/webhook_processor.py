"""Webhook processor for Stripe billing events.

Verifies the delivery, drops replays through the idempotency log, and
applies the mutation computed by the pure handlers in ``types`` as a
single upsert. The log insert and the upsert share one transaction: if
applying fails, the log row is rolled back and the sender's retry is
processed again.
"""

from typing import Any, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from prepcoach.core.logging import ContextualLogger, logger
from prepcoach.core.protocols.payment import PaymentGatewayProtocol
from prepcoach.core.resilience import ResilientInvoker
from prepcoach.db.unit_of_work import UnitOfWork
from prepcoach.domains.billing.exceptions import (
    SignatureError,
    WebhookPayloadError,
    wrap_gateway_errors,
)
from prepcoach.domains.billing.protocols import BillingWebhookProtocol, WebhookResult
from prepcoach.domains.billing.repository import (
    ProcessedEventRepositoryProtocol,
    SubscriptionRepositoryProtocol,
)
from prepcoach.domains.billing.types import (
    EVENT_HANDLERS,
    EventType,
    PricePlanMap,
    SubscriptionMutation,
)


class BillingWebhookProcessor(BillingWebhookProtocol):
    """Process Stripe webhook events for billing."""

    def __init__(
        self,
        payment_gateway: PaymentGatewayProtocol,
        subscription_repo: SubscriptionRepositoryProtocol,
        event_repo: ProcessedEventRepositoryProtocol,
        prices: PricePlanMap,
        invoker: ResilientInvoker,
    ) -> None:
        """Initialize with all required dependencies."""
        self._payment_gateway = payment_gateway
        self._subscription_repo = subscription_repo
        self._event_repo = event_repo
        self._prices = prices
        self._invoker = invoker

    @wrap_gateway_errors
    async def process_webhook(
        self, db: AsyncSession, payload: bytes, signature: str
    ) -> WebhookResult:
        """Verify webhook signature and process the resulting event.

        Raises:
            SignatureError: Signature missing, invalid, or outside tolerance.
            WebhookPayloadError: Verified body is not a usable event.
            StorageUnavailableError: Log or store could not be reached.
        """
        try:
            event = self._payment_gateway.verify_webhook_signature(payload, signature)
        except SignatureError as e:
            logger.warning(
                f"Rejected webhook delivery: signature verification failed ({e})",
                extra={"security_event": "webhook_signature_failure"},
            )
            raise

        return await self._process_event(db, self._check_event_shape(event))

    @staticmethod
    def _check_event_shape(event: Any) -> Mapping[str, Any]:
        if not isinstance(event, Mapping):
            raise WebhookPayloadError("Webhook body is not a JSON object")
        if not event.get("id") or not event.get("type"):
            raise WebhookPayloadError("Webhook event is missing id or type")
        obj = (event.get("data") or {}).get("object")
        if not isinstance(obj, Mapping):
            raise WebhookPayloadError("Webhook event is missing data.object")
        return event

    async def _process_event(self, db: AsyncSession, event: Mapping[str, Any]) -> WebhookResult:
        """Process a verified webhook event."""
        event_id: str = event["id"]
        event_type: str = event["type"]
        obj: Mapping[str, Any] = event["data"]["object"]
        log = logger.with_context(event_id=event_id, event_type=event_type)

        handler = EVENT_HANDLERS.get(event_type)
        if handler is None:
            log.info(f"Unhandled webhook event type: {event_type}")
            return WebhookResult(accepted=True, event_id=event_id, event_type=event_type)

        if await self._event_repo.exists(db, event_id=event_id):
            log.info("Duplicate webhook delivery ignored")
            return WebhookResult(
                accepted=True, event_id=event_id, event_type=event_type, duplicate=True
            )

        fetched = await self._fetch_subscription_if_needed(event_type, obj, log)
        try:
            mutation = handler(obj, self._prices, fetched)
        except (KeyError, TypeError, AttributeError) as e:
            raise WebhookPayloadError(f"Cannot interpret {event_type} payload: {e}") from e

        user_id = mutation.user_id or await self._resolve_user_id(db, mutation)
        log = log.with_context(user_id=user_id)
        if user_id is None and not mutation.patch.is_empty:
            log.warning("Webhook event does not map to a known user; acknowledged without effect")
            return WebhookResult(accepted=True, event_id=event_id, event_type=event_type)

        return await self._apply(db, event_id, event_type, user_id, mutation, log)

    async def _apply(
        self,
        db: AsyncSession,
        event_id: str,
        event_type: str,
        user_id: Optional[str],
        mutation: SubscriptionMutation,
        log: ContextualLogger,
    ) -> WebhookResult:
        try:
            async with UnitOfWork(db) as uow:
                inserted = await self._event_repo.insert_if_absent(
                    db,
                    event_id=event_id,
                    event_type=event_type,
                    user_id=user_id,
                    amount=mutation.amount,
                    plan=mutation.plan,
                    uow=uow,
                )
                if not inserted:
                    # Lost the race to a concurrent delivery of the same event.
                    log.info("Duplicate webhook delivery ignored")
                    return WebhookResult(
                        accepted=True, event_id=event_id, event_type=event_type, duplicate=True
                    )

                applied = False
                if user_id is not None and not mutation.patch.is_empty:
                    await self._subscription_repo.upsert(
                        db, user_id=user_id, patch=mutation.patch, uow=uow
                    )
                    applied = True
                await uow.commit()
        except Exception as e:
            log.error(f"Error handling {event_type}: {e}", exc_info=True)
            raise

        if applied:
            log.info(
                f"Processed webhook event: {event_type} "
                f"(status={mutation.patch.status}, plan={mutation.patch.plan_id})"
            )
        else:
            log.info(f"Recorded webhook event: {event_type}")
        return WebhookResult(
            accepted=True, event_id=event_id, event_type=event_type, applied=applied
        )

    async def _fetch_subscription_if_needed(
        self, event_type: str, obj: Mapping[str, Any], log: ContextualLogger
    ) -> Optional[dict[str, Any]]:
        """Fetch the subscription when a completed checkout session carries no price."""
        if event_type != EventType.CHECKOUT_COMPLETED.value:
            return None
        if (obj.get("metadata") or {}).get("priceId"):
            return None
        subscription_id = obj.get("subscription")
        if isinstance(subscription_id, Mapping):
            return dict(subscription_id)
        if not subscription_id:
            return None
        log.debug(f"Fetching subscription {subscription_id} for checkout enrichment")
        return await self._invoker.invoke(
            lambda: self._payment_gateway.get_subscription(subscription_id)
        )

    async def _resolve_user_id(
        self, db: AsyncSession, mutation: SubscriptionMutation
    ) -> Optional[str]:
        """Find the user through stored Stripe ids when the event carries no userId."""
        record = None
        if mutation.stripe_subscription_id:
            record = await self._subscription_repo.get_by_stripe_subscription_id(
                db, stripe_subscription_id=mutation.stripe_subscription_id
            )
        if record is None and mutation.stripe_customer_id:
            record = await self._subscription_repo.get_by_stripe_customer_id(
                db, stripe_customer_id=mutation.stripe_customer_id
            )
        return record.user_id if record is not None else None
