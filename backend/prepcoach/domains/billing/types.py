"""Billing domain types and shared pure functions.

The webhook state machine lives here: each handled event type maps to a
pure function from the event's ``data.object`` (plus an optionally fetched
subscription) to a ``SubscriptionMutation``. Nothing in this module does I/O.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Mapping, Optional

from prepcoach.domains.billing.exceptions import WebhookPayloadError
from prepcoach.domains.billing.plans import PlanId, is_paid_plan


class SubscriptionStatus(str, Enum):
    """Stored subscription states. ``free`` is implied by the absence of a record."""

    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    INCOMPLETE = "incomplete"


KNOWN_STATUSES = frozenset(s.value for s in SubscriptionStatus)


class EventType(str, Enum):
    """Billing platform events the processor acts on."""

    CHECKOUT_COMPLETED = "checkout.session.completed"
    SUBSCRIPTION_CREATED = "customer.subscription.created"
    SUBSCRIPTION_UPDATED = "customer.subscription.updated"
    SUBSCRIPTION_DELETED = "customer.subscription.deleted"
    INVOICE_PAID = "invoice.paid"
    INVOICE_PAYMENT_FAILED = "invoice.payment_failed"


HANDLED_EVENT_TYPES = frozenset(e.value for e in EventType)

# Events that mark the start of a subscription.
START_EVENT_TYPES = frozenset(
    {EventType.CHECKOUT_COMPLETED.value, EventType.SUBSCRIPTION_CREATED.value}
)


@dataclass(frozen=True)
class PricePlanMap:
    """Price-id to plan-id mapping with a fallback for unknown prices."""

    mapping: Mapping[str, str]
    default_plan: str = PlanId.PREMIUM_MONTHLY.value

    def plan_for(self, price_id: Optional[str]) -> str:
        """Resolve ``price_id``; unknown prices fall back to ``default_plan``."""
        if price_id is None:
            return self.default_plan
        return self.mapping.get(price_id, self.default_plan)

    def is_known_price(self, price_id: str) -> bool:
        """Whether ``price_id`` is configured."""
        return price_id in self.mapping


@dataclass(frozen=True)
class SubscriptionPatch:
    """Fields to write onto a SubscriptionRecord. ``None`` means leave unchanged.

    ``clear_period`` forces both period bounds to NULL.
    """

    plan_id: Optional[str] = None
    status: Optional[str] = None
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: Optional[bool] = None
    clear_period: bool = False

    def as_values(self) -> dict[str, Any]:
        """Column values to write."""
        values: dict[str, Any] = {
            name: getattr(self, name)
            for name in (
                "plan_id",
                "status",
                "stripe_customer_id",
                "stripe_subscription_id",
                "current_period_start",
                "current_period_end",
                "cancel_at_period_end",
            )
            if getattr(self, name) is not None
        }
        if self.clear_period:
            values["current_period_start"] = None
            values["current_period_end"] = None
        return values

    @property
    def is_empty(self) -> bool:
        """True when applying the patch would change nothing."""
        return not self.as_values()


@dataclass(frozen=True)
class SubscriptionMutation:
    """Outcome of a pure event handler.

    ``user_id`` may be None when the event does not carry it; the processor
    then resolves it from the stored customer / subscription ids.
    """

    user_id: Optional[str]
    stripe_customer_id: Optional[str]
    stripe_subscription_id: Optional[str]
    patch: SubscriptionPatch = field(default_factory=SubscriptionPatch)
    amount: Optional[Decimal] = None
    plan: Optional[str] = None


@dataclass(frozen=True)
class SubscriptionSnapshot:
    """Read model of a user's subscription, defaulting to the free plan."""

    user_id: str
    plan_id: str
    status: str
    current_period_start: Optional[datetime]
    current_period_end: Optional[datetime]
    cancel_at_period_end: bool
    stripe_customer_id: Optional[str] = None

    @property
    def is_premium(self) -> bool:
        """Active on a paid plan."""
        return is_premium(self.plan_id, self.status)


@dataclass(frozen=True)
class SubscriptionAnalytics:
    """Per-user summary derived from the processed-event log."""

    user_id: str
    subscription_start: Optional[datetime]
    total_spent: Decimal
    upgrades: int
    renewals: int
    event_count: int


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def is_premium(plan_id: Optional[str], status: Optional[str]) -> bool:
    """A user is premium when their record is active on a paid plan."""
    if status != SubscriptionStatus.ACTIVE.value or plan_id is None:
        return False
    return is_paid_plan(plan_id)


def normalize_status(raw: Optional[str]) -> str:
    """Restrict an upstream status to the known set; anything else is ``incomplete``."""
    if raw in KNOWN_STATUSES:
        return raw  # type: ignore[return-value]
    return SubscriptionStatus.INCOMPLETE.value


def from_unix(ts: Any) -> Optional[datetime]:
    """Convert a unix timestamp to an aware UTC datetime."""
    if ts is None:
        return None
    try:
        return datetime.fromtimestamp(int(ts), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError) as e:
        raise WebhookPayloadError(f"Invalid timestamp: {ts!r}") from e


def to_amount(cents: Any) -> Optional[Decimal]:
    """Convert minor units to a two-place Decimal."""
    if cents is None:
        return None
    try:
        return (Decimal(int(cents)) / 100).quantize(Decimal("0.01"))
    except (TypeError, ValueError) as e:
        raise WebhookPayloadError(f"Invalid amount: {cents!r}") from e


def _id_of(value: Any) -> Optional[str]:
    """Stripe fields may be an id string or an expanded object."""
    if value is None:
        return None
    if isinstance(value, Mapping):
        return value.get("id")
    return str(value)


def metadata_user_id(obj: Mapping[str, Any]) -> Optional[str]:
    """``metadata.userId`` (or ``client_reference_id``) from an event object."""
    metadata = obj.get("metadata") or {}
    return metadata.get("userId") or obj.get("client_reference_id") or None


def first_item(subscription: Mapping[str, Any]) -> Mapping[str, Any]:
    """First subscription item, or an empty mapping."""
    items = (subscription.get("items") or {}).get("data") or []
    return items[0] if items else {}


def subscription_price_id(subscription: Mapping[str, Any]) -> Optional[str]:
    """Price id of the first subscription item."""
    return _id_of(first_item(subscription).get("price"))


def subscription_unit_amount(subscription: Mapping[str, Any]) -> Optional[Decimal]:
    """Unit amount of the first subscription item's price."""
    price = first_item(subscription).get("price") or {}
    if isinstance(price, Mapping):
        return to_amount(price.get("unit_amount"))
    return None


def subscription_period(
    subscription: Mapping[str, Any],
) -> tuple[Optional[datetime], Optional[datetime]]:
    """Current period bounds.

    Newer API versions carry them on the subscription item, older ones on
    the subscription itself.
    """
    item = first_item(subscription)
    start = subscription.get("current_period_start", item.get("current_period_start"))
    end = subscription.get("current_period_end", item.get("current_period_end"))
    return from_unix(start), from_unix(end)


def invoice_subscription_id(invoice: Mapping[str, Any]) -> Optional[str]:
    """Subscription id an invoice belongs to, across API versions."""
    sub = invoice.get("subscription")
    if sub is None:
        parent = (invoice.get("parent") or {}).get("subscription_details") or {}
        sub = parent.get("subscription")
    return _id_of(sub)


# ---------------------------------------------------------------------------
# Event handlers: (event object, price map, fetched subscription) -> mutation
# ---------------------------------------------------------------------------


def _subscription_mutation(
    sub: Mapping[str, Any], prices: PricePlanMap, user_id: Optional[str]
) -> SubscriptionMutation:
    plan = prices.plan_for(subscription_price_id(sub))
    start, end = subscription_period(sub)
    patch = SubscriptionPatch(
        plan_id=plan,
        status=normalize_status(sub.get("status")),
        stripe_customer_id=_id_of(sub.get("customer")),
        stripe_subscription_id=_id_of(sub.get("id")),
        current_period_start=start,
        current_period_end=end,
        cancel_at_period_end=bool(sub.get("cancel_at_period_end", False)),
    )
    return SubscriptionMutation(
        user_id=user_id,
        stripe_customer_id=patch.stripe_customer_id,
        stripe_subscription_id=patch.stripe_subscription_id,
        patch=patch,
        plan=plan,
    )


def handle_checkout_completed(
    session: Mapping[str, Any],
    prices: PricePlanMap,
    subscription: Optional[Mapping[str, Any]] = None,
) -> SubscriptionMutation:
    """``checkout.session.completed`` -> active on the purchased plan."""
    customer_id = _id_of(session.get("customer"))
    subscription_id = _id_of(session.get("subscription"))
    metadata = session.get("metadata") or {}
    price_id = metadata.get("priceId")
    start = end = None
    cancel_at_period_end = None
    amount = to_amount(session.get("amount_total"))

    if subscription is not None:
        price_id = subscription_price_id(subscription) or price_id
        start, end = subscription_period(subscription)
        cancel_at_period_end = bool(subscription.get("cancel_at_period_end", False))
        amount = subscription_unit_amount(subscription) or amount

    plan = prices.plan_for(price_id)
    patch = SubscriptionPatch(
        plan_id=plan,
        status=SubscriptionStatus.ACTIVE.value,
        stripe_customer_id=customer_id,
        stripe_subscription_id=subscription_id,
        current_period_start=start,
        current_period_end=end,
        cancel_at_period_end=cancel_at_period_end,
    )
    return SubscriptionMutation(
        user_id=metadata_user_id(session),
        stripe_customer_id=customer_id,
        stripe_subscription_id=subscription_id,
        patch=patch,
        amount=amount,
        plan=plan,
    )


def handle_subscription_updated(
    subscription: Mapping[str, Any],
    prices: PricePlanMap,
    fetched: Optional[Mapping[str, Any]] = None,
) -> SubscriptionMutation:
    """``customer.subscription.created|updated`` -> upstream status, restricted."""
    return _subscription_mutation(subscription, prices, metadata_user_id(subscription))


def handle_subscription_deleted(
    subscription: Mapping[str, Any],
    prices: PricePlanMap,
    fetched: Optional[Mapping[str, Any]] = None,
) -> SubscriptionMutation:
    """``customer.subscription.deleted`` -> canceled and downgraded to free, always."""
    customer_id = _id_of(subscription.get("customer"))
    subscription_id = _id_of(subscription.get("id"))
    patch = SubscriptionPatch(
        plan_id=PlanId.FREE.value,
        status=SubscriptionStatus.CANCELED.value,
        stripe_customer_id=customer_id,
        stripe_subscription_id=subscription_id,
        cancel_at_period_end=False,
        clear_period=True,
    )
    return SubscriptionMutation(
        user_id=metadata_user_id(subscription),
        stripe_customer_id=customer_id,
        stripe_subscription_id=subscription_id,
        patch=patch,
        plan=PlanId.FREE.value,
    )


def handle_invoice_paid(
    invoice: Mapping[str, Any],
    prices: PricePlanMap,
    fetched: Optional[Mapping[str, Any]] = None,
) -> SubscriptionMutation:
    """``invoice.paid`` -> recorded with its amount; status is left alone."""
    lines = (invoice.get("lines") or {}).get("data") or []
    price = (lines[0].get("price") or {}) if lines else {}
    price_id = price.get("id") if isinstance(price, Mapping) else None
    return SubscriptionMutation(
        user_id=metadata_user_id(invoice),
        stripe_customer_id=_id_of(invoice.get("customer")),
        stripe_subscription_id=invoice_subscription_id(invoice),
        amount=to_amount(invoice.get("amount_paid")),
        plan=prices.plan_for(price_id) if price_id else None,
    )


def handle_invoice_payment_failed(
    invoice: Mapping[str, Any],
    prices: PricePlanMap,
    fetched: Optional[Mapping[str, Any]] = None,
) -> SubscriptionMutation:
    """``invoice.payment_failed`` -> past_due."""
    return SubscriptionMutation(
        user_id=metadata_user_id(invoice),
        stripe_customer_id=_id_of(invoice.get("customer")),
        stripe_subscription_id=invoice_subscription_id(invoice),
        patch=SubscriptionPatch(status=SubscriptionStatus.PAST_DUE.value),
    )


EventHandler = Callable[
    [Mapping[str, Any], PricePlanMap, Optional[Mapping[str, Any]]], SubscriptionMutation
]

EVENT_HANDLERS: dict[str, EventHandler] = {
    EventType.CHECKOUT_COMPLETED.value: handle_checkout_completed,
    EventType.SUBSCRIPTION_CREATED.value: handle_subscription_updated,
    EventType.SUBSCRIPTION_UPDATED.value: handle_subscription_updated,
    EventType.SUBSCRIPTION_DELETED.value: handle_subscription_deleted,
    EventType.INVOICE_PAID.value: handle_invoice_paid,
    EventType.INVOICE_PAYMENT_FAILED.value: handle_invoice_payment_failed,
}


def compute_analytics(user_id: str, events: list[Any]) -> SubscriptionAnalytics:
    """Summarize processed events (oldest first) for one user.

    ``total_spent`` counts collected invoices only; the first paid invoice is
    the initial charge, every later one a renewal.
    """
    start = next((e.processed_at for e in events if e.type in START_EVENT_TYPES), None)
    paid = [e for e in events if e.type == EventType.INVOICE_PAID.value]
    total = sum((Decimal(e.amount) for e in paid if e.amount is not None), Decimal("0.00"))
    upgrades = sum(1 for e in events if e.type == EventType.SUBSCRIPTION_UPDATED.value)
    return SubscriptionAnalytics(
        user_id=user_id,
        subscription_start=start,
        total_spent=total,
        upgrades=upgrades,
        renewals=max(0, len(paid) - 1),
        event_count=len(events),
    )
