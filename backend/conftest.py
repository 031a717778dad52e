"""Root conftest for pytest configuration and shared fixtures.

This conftest is loaded before the colocated test packages under prepcoach/,
making its fixtures available to domain tests and API tests alike.
"""

import os
from unittest.mock import MagicMock

import pytest

# Register pytest-asyncio plugin at the root level
pytest_plugins = ("pytest_asyncio",)

# ---------------------------------------------------------------------------
# Environment variables: must be set before any prepcoach module import
# Uses setdefault so real env vars (CI, e2e) are never overridden.
# ---------------------------------------------------------------------------
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("POSTGRES_HOST", "localhost")
os.environ.setdefault("POSTGRES_USER", "test_user")
os.environ.setdefault("POSTGRES_PASSWORD", "test_password")
os.environ.setdefault("POSTGRES_DB", "test_db")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test")
os.environ.setdefault("SITE_URL", "https://prepcoach.test")
os.environ.setdefault("RUN_ALEMBIC_MIGRATIONS", "false")


async def _no_sleep(seconds: float) -> None:
    return None


# ---------------------------------------------------------------------------
# Shared fake fixtures: individual protocol fakes
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_payment_gateway():
    """Fake PaymentGateway that records calls and accepts one signature."""
    from prepcoach.adapters.payment.fake import FakePaymentGateway

    return FakePaymentGateway()


@pytest.fixture
def fake_subscription_repo():
    """In-memory subscription store."""
    from prepcoach.domains.billing.fakes.repository import FakeSubscriptionRepository

    return FakeSubscriptionRepository()


@pytest.fixture
def fake_event_repo():
    """In-memory processed event log."""
    from prepcoach.domains.billing.fakes.repository import FakeProcessedEventRepository

    return FakeProcessedEventRepository()


@pytest.fixture
def fake_usage_repo():
    """In-memory usage counters."""
    from prepcoach.domains.usage.fakes.repository import FakeUsageCounterRepository

    return FakeUsageCounterRepository()


# ---------------------------------------------------------------------------
# Test container: fully faked Container for injection
# ---------------------------------------------------------------------------


@pytest.fixture
def test_container(
    fake_payment_gateway,
    fake_subscription_repo,
    fake_event_repo,
    fake_usage_repo,
):
    """A Container with real domain services wired onto fakes.

    Retries never wait and the coaching service runs without an inference
    client, so it serves mock payloads.

    For partial overrides, use container.replace():
        live = test_container.replace(coaching_service=CoachingService(client, invoker))
    """
    from prepcoach.core.container import Container
    from prepcoach.core.resilience import ResilientInvoker
    from prepcoach.domains.billing.checkout import CheckoutBroker
    from prepcoach.domains.billing.service import SubscriptionQueryService
    from prepcoach.domains.billing.types import PricePlanMap
    from prepcoach.domains.billing.webhook_processor import BillingWebhookProcessor
    from prepcoach.domains.coaching.service import CoachingService
    from prepcoach.domains.usage.evaluator import EntitlementEvaluator
    from prepcoach.domains.usage.ledger import UsageLedger

    prices = PricePlanMap(
        mapping={"price_monthly": "premium_monthly", "price_yearly": "premium_yearly"}
    )
    stripe_invoker = ResilientInvoker("Stripe", sleep=_no_sleep)
    subscription_query = SubscriptionQueryService(
        subscription_repo=fake_subscription_repo, event_repo=fake_event_repo
    )
    usage_ledger = UsageLedger(repo=fake_usage_repo)

    return Container(
        session_factory=MagicMock(),
        payment_gateway=fake_payment_gateway,
        subscription_repo=fake_subscription_repo,
        event_repo=fake_event_repo,
        usage_repo=fake_usage_repo,
        billing_webhook=BillingWebhookProcessor(
            payment_gateway=fake_payment_gateway,
            subscription_repo=fake_subscription_repo,
            event_repo=fake_event_repo,
            prices=prices,
            invoker=stripe_invoker,
        ),
        checkout_broker=CheckoutBroker(
            payment_gateway=fake_payment_gateway,
            subscription_repo=fake_subscription_repo,
            prices=prices,
            invoker=stripe_invoker,
            site_url="https://prepcoach.test",
        ),
        subscription_query=subscription_query,
        usage_ledger=usage_ledger,
        entitlements=EntitlementEvaluator(
            ledger=usage_ledger, subscriptions=subscription_query, free_question_limit=5
        ),
        coaching_service=CoachingService(
            client=None, invoker=ResilientInvoker("Anthropic", sleep=_no_sleep)
        ),
    )
