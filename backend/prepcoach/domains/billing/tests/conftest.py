"""Billing domain test fixtures and helpers.

Provides pre-built helpers for ORM models, service wiring, and Stripe
event shapes.
"""

import json
import time
from datetime import datetime, timezone
from typing import Any, Optional
from unittest.mock import AsyncMock

import pytest

from prepcoach.adapters.payment.fake import FakePaymentGateway
from prepcoach.core.resilience import ResilientInvoker
from prepcoach.domains.billing.checkout import CheckoutBroker
from prepcoach.domains.billing.fakes.repository import (
    FakeProcessedEventRepository,
    FakeSubscriptionRepository,
)
from prepcoach.domains.billing.service import SubscriptionQueryService
from prepcoach.domains.billing.types import PricePlanMap
from prepcoach.domains.billing.webhook_processor import BillingWebhookProcessor
from prepcoach.models import SubscriptionRecord

DEFAULT_USER_ID = "U1"
PRICES = PricePlanMap(
    mapping={"price_monthly": "premium_monthly", "price_yearly": "premium_yearly"},
    default_plan="premium_monthly",
)
SITE_URL = "https://prepcoach.test"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _no_sleep(seconds: float) -> None:
    return None


def _make_invoker(max_retries: int = 3) -> ResilientInvoker:
    """Invoker that never actually waits."""
    return ResilientInvoker("Stripe", max_retries=max_retries, sleep=_no_sleep)


def _make_record(user_id: str = DEFAULT_USER_ID, **overrides: Any) -> SubscriptionRecord:
    """Return a SubscriptionRecord ORM model with sensible defaults."""
    now = datetime.now(timezone.utc)
    defaults = dict(
        user_id=user_id,
        plan_id="premium_monthly",
        status="active",
        stripe_customer_id="cus_test",
        stripe_subscription_id="sub_test",
        current_period_start=now,
        current_period_end=now,
        cancel_at_period_end=False,
        created_at=now,
        updated_at=now,
    )
    defaults.update(overrides)
    return SubscriptionRecord(**defaults)


def _make_subscription_obj(
    sub_id: str = "sub_test",
    customer: str = "cus_test",
    status: str = "active",
    price_id: str = "price_monthly",
    unit_amount: int = 1999,
    cancel_at_period_end: bool = False,
    metadata: Optional[dict] = None,
) -> dict[str, Any]:
    """Stripe subscription object as it appears in webhook payloads."""
    now = int(time.time())
    return {
        "id": sub_id,
        "object": "subscription",
        "customer": customer,
        "status": status,
        "cancel_at_period_end": cancel_at_period_end,
        "current_period_start": now,
        "current_period_end": now + 30 * 86400,
        "metadata": metadata or {},
        "items": {
            "object": "list",
            "data": [{"id": "si_test", "price": {"id": price_id, "unit_amount": unit_amount}}],
        },
    }


def _make_checkout_session_obj(
    user_id: Optional[str] = DEFAULT_USER_ID,
    customer: str = "cus_test",
    subscription: str = "sub_test",
    price_id: Optional[str] = "price_monthly",
    amount_total: int = 1999,
) -> dict[str, Any]:
    """Completed checkout session object."""
    metadata: dict[str, str] = {}
    if user_id:
        metadata["userId"] = user_id
    if price_id:
        metadata["priceId"] = price_id
    return {
        "id": "cs_test",
        "object": "checkout.session",
        "customer": customer,
        "subscription": subscription,
        "amount_total": amount_total,
        "metadata": metadata,
    }


def _make_invoice_obj(
    customer: str = "cus_test",
    subscription: str = "sub_test",
    amount_paid: int = 1999,
    price_id: Optional[str] = "price_monthly",
) -> dict[str, Any]:
    """Invoice object."""
    lines = [{"price": {"id": price_id}}] if price_id else []
    return {
        "id": "in_test",
        "object": "invoice",
        "customer": customer,
        "subscription": subscription,
        "amount_paid": amount_paid,
        "lines": {"data": lines},
    }


def _make_event(event_type: str, obj: dict[str, Any], event_id: str = "evt_test") -> dict:
    """Stripe event envelope."""
    return {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "created": int(time.time()),
        "data": {"object": obj},
    }


def _payload(event: dict) -> bytes:
    return json.dumps(event).encode()


def _make_db() -> AsyncMock:
    """AsyncSession stand-in; commit / rollback / flush are recorded."""
    return AsyncMock()


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def gateway() -> FakePaymentGateway:
    return FakePaymentGateway()


@pytest.fixture
def subscription_repo() -> FakeSubscriptionRepository:
    return FakeSubscriptionRepository()


@pytest.fixture
def event_repo() -> FakeProcessedEventRepository:
    return FakeProcessedEventRepository()


@pytest.fixture
def processor(gateway, subscription_repo, event_repo) -> BillingWebhookProcessor:
    return BillingWebhookProcessor(
        payment_gateway=gateway,
        subscription_repo=subscription_repo,
        event_repo=event_repo,
        prices=PRICES,
        invoker=_make_invoker(),
    )


@pytest.fixture
def broker(gateway, subscription_repo) -> CheckoutBroker:
    return CheckoutBroker(
        payment_gateway=gateway,
        subscription_repo=subscription_repo,
        prices=PRICES,
        invoker=_make_invoker(),
        site_url=SITE_URL,
    )


@pytest.fixture
def query_service(subscription_repo, event_repo) -> SubscriptionQueryService:
    return SubscriptionQueryService(subscription_repo=subscription_repo, event_repo=event_repo)
