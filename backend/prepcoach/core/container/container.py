"""Dependency Injection Container.

The container is a simple immutable dataclass that holds protocol implementations.
It has no construction logic; that belongs in the factory.

Design principles:
- Container serves, factory builds
- Fail fast: all construction at startup
- Type safety: fields are protocol types
- Testing: construct directly with fakes
"""

from dataclasses import dataclass, replace
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from prepcoach.core.protocols.inference import InferenceClient
from prepcoach.core.protocols.payment import PaymentGatewayProtocol
from prepcoach.domains.billing.protocols import (
    BillingWebhookProtocol,
    CheckoutBrokerProtocol,
    SubscriptionQueryProtocol,
)
from prepcoach.domains.billing.repository import (
    ProcessedEventRepositoryProtocol,
    SubscriptionRepositoryProtocol,
)
from prepcoach.domains.coaching.protocols import CoachingServiceProtocol
from prepcoach.domains.usage.protocols import EntitlementEvaluatorProtocol, UsageLedgerProtocol
from prepcoach.domains.usage.repository import UsageCounterRepositoryProtocol


@dataclass(frozen=True)
class Container:
    """Immutable container holding all protocol implementations.

    Usage:
        # Production: use the global container built by factory
        from prepcoach.core.container import container
        await container.entitlements.can_use(db, user_id=..., feature_type=...)

        # Testing: construct directly with fakes (see backend/prepcoach/api/tests/conftest.py)
        test_container = Container(payment_gateway=FakePaymentGateway(), ...)

        # FastAPI endpoints: use Inject() to pull individual protocols
        from prepcoach.api.deps import Inject
        async def my_endpoint(broker: CheckoutBrokerProtocol = Inject(CheckoutBrokerProtocol)):
            ...
    """

    # Database session factory (one session per request)
    session_factory: async_sessionmaker[AsyncSession]

    # External boundaries
    payment_gateway: PaymentGatewayProtocol

    # Repository protocols
    subscription_repo: SubscriptionRepositoryProtocol
    event_repo: ProcessedEventRepositoryProtocol
    usage_repo: UsageCounterRepositoryProtocol

    # Billing domain
    billing_webhook: BillingWebhookProtocol
    checkout_broker: CheckoutBrokerProtocol
    subscription_query: SubscriptionQueryProtocol

    # Usage domain
    usage_ledger: UsageLedgerProtocol
    entitlements: EntitlementEvaluatorProtocol

    # Coaching domain (mocks when no inference client is configured)
    coaching_service: CoachingServiceProtocol

    # Optional: None when no ANTHROPIC_API_KEY is configured
    inference_client: Optional[InferenceClient] = None

    # Engine behind session_factory; disposed at shutdown
    engine: Optional[AsyncEngine] = None

    # -----------------------------------------------------------------
    # Convenience methods
    # -----------------------------------------------------------------

    def replace(self, **changes: Any) -> "Container":
        """Create a new container with some dependencies replaced.

        Useful for partial overrides in tests:

            modified = container.replace(payment_gateway=FakePaymentGateway())
        """
        return replace(self, **changes)
