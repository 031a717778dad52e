"""Usage domain test fixtures and helpers.

Follows the pattern from domains/billing/tests/.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from prepcoach.domains.billing.fakes.repository import (
    FakeProcessedEventRepository,
    FakeSubscriptionRepository,
)
from prepcoach.domains.billing.service import SubscriptionQueryService
from prepcoach.domains.usage.evaluator import EntitlementEvaluator
from prepcoach.domains.usage.fakes.repository import FakeUsageCounterRepository
from prepcoach.domains.usage.ledger import UsageLedger

DEFAULT_USER_ID = "U1"
NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)
PERIOD = "2024-03"
FREE_QUESTION_LIMIT = 5


def _make_db() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def counter_repo() -> FakeUsageCounterRepository:
    return FakeUsageCounterRepository()


@pytest.fixture
def subscription_repo() -> FakeSubscriptionRepository:
    return FakeSubscriptionRepository()


@pytest.fixture
def ledger(counter_repo) -> UsageLedger:
    return UsageLedger(repo=counter_repo, clock=lambda: NOW)


@pytest.fixture
def evaluator(ledger, subscription_repo) -> EntitlementEvaluator:
    subscriptions = SubscriptionQueryService(
        subscription_repo=subscription_repo, event_repo=FakeProcessedEventRepository()
    )
    return EntitlementEvaluator(
        ledger=ledger, subscriptions=subscriptions, free_question_limit=FREE_QUESTION_LIMIT
    )
