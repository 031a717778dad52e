"""Container Factory.

All construction logic lives here. The factory reads settings and builds
the container with environment-appropriate implementations.

Design principles:
- Single place for all wiring decisions
- Settings are read here and nowhere in domain code
- Fail fast: broken wiring crashes at startup
"""

from typing import Optional

from prepcoach.core.config import Settings
from prepcoach.core.container.container import Container
from prepcoach.core.logging import logger
from prepcoach.core.protocols.inference import InferenceClient
from prepcoach.core.protocols.payment import PaymentGatewayProtocol
from prepcoach.core.resilience import ResilientInvoker
from prepcoach.db.session import build_engine, build_session_factory
from prepcoach.domains.billing.checkout import CheckoutBroker
from prepcoach.domains.billing.repository import (
    ProcessedEventRepository,
    SubscriptionRepository,
)
from prepcoach.domains.billing.service import SubscriptionQueryService
from prepcoach.domains.billing.types import PricePlanMap
from prepcoach.domains.billing.webhook_processor import BillingWebhookProcessor
from prepcoach.domains.coaching.service import CoachingService
from prepcoach.domains.usage.evaluator import EntitlementEvaluator
from prepcoach.domains.usage.ledger import UsageLedger
from prepcoach.domains.usage.repository import UsageCounterRepository


def create_container(settings: Settings) -> Container:
    """Build container with environment-appropriate implementations.

    This is the single source of truth for dependency wiring.

    Args:
        settings: Application settings (from core/config)

    Returns:
        Fully constructed Container ready for use
    """
    engine = build_engine(settings)
    session_factory = build_session_factory(engine)

    billing = _create_billing_services(settings)
    usage = _create_usage_services(settings, billing["subscription_query"])
    inference_client = _create_inference_client(settings)

    coaching_service = CoachingService(
        client=inference_client,
        invoker=ResilientInvoker(
            "Anthropic",
            max_retries=settings.INFERENCE_MAX_RETRIES,
            base_delay_ms=settings.INFERENCE_BASE_DELAY_MS,
        ),
        deadline_seconds=settings.INFERENCE_DEADLINE_SECONDS,
    )

    return Container(
        session_factory=session_factory,
        engine=engine,
        payment_gateway=billing["payment_gateway"],
        subscription_repo=billing["subscription_repo"],
        event_repo=billing["event_repo"],
        usage_repo=usage["usage_repo"],
        billing_webhook=billing["billing_webhook"],
        checkout_broker=billing["checkout_broker"],
        subscription_query=billing["subscription_query"],
        usage_ledger=usage["usage_ledger"],
        entitlements=usage["entitlements"],
        coaching_service=coaching_service,
        inference_client=inference_client,
    )


def _create_payment_gateway(settings: Settings) -> PaymentGatewayProtocol:
    """Create payment gateway: Stripe if a key is configured, otherwise a null implementation."""
    if settings.STRIPE_SECRET_KEY:
        from prepcoach.adapters.payment.stripe import StripePaymentGateway

        return StripePaymentGateway(
            api_key=settings.STRIPE_SECRET_KEY,
            webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
            webhook_tolerance_seconds=settings.STRIPE_WEBHOOK_TOLERANCE_SECONDS,
        )

    from prepcoach.adapters.payment.null import NullPaymentGateway

    logger.warning("STRIPE_SECRET_KEY not set; billing endpoints are disabled")
    return NullPaymentGateway()


def _create_inference_client(settings: Settings) -> Optional[InferenceClient]:
    """Anthropic client if a key is configured; None makes coaching serve mocks."""
    if not settings.inference_enabled:
        logger.warning("ANTHROPIC_API_KEY not set; coaching endpoints return mock data")
        return None

    from prepcoach.adapters.inference.anthropic import AnthropicInferenceClient

    return AnthropicInferenceClient(
        api_key=settings.ANTHROPIC_API_KEY,
        model=settings.ANTHROPIC_MODEL,
        timeout_seconds=settings.INFERENCE_TIMEOUT_SECONDS,
    )


def _create_billing_services(settings: Settings) -> dict:
    """Create billing services with shared repositories, gateway, and invoker."""
    payment_gateway = _create_payment_gateway(settings)
    subscription_repo = SubscriptionRepository()
    event_repo = ProcessedEventRepository()
    prices = PricePlanMap(
        mapping=settings.STRIPE_PRICE_PLAN_MAPPING,
        default_plan=settings.STRIPE_DEFAULT_PAID_PLAN,
    )
    invoker = ResilientInvoker(
        "Stripe",
        max_retries=settings.STRIPE_MAX_RETRIES,
        base_delay_ms=settings.STRIPE_BASE_DELAY_MS,
    )

    billing_webhook = BillingWebhookProcessor(
        payment_gateway=payment_gateway,
        subscription_repo=subscription_repo,
        event_repo=event_repo,
        prices=prices,
        invoker=invoker,
    )
    checkout_broker = CheckoutBroker(
        payment_gateway=payment_gateway,
        subscription_repo=subscription_repo,
        prices=prices,
        invoker=invoker,
        site_url=settings.SITE_URL,
    )
    subscription_query = SubscriptionQueryService(
        subscription_repo=subscription_repo, event_repo=event_repo
    )

    return {
        "payment_gateway": payment_gateway,
        "subscription_repo": subscription_repo,
        "event_repo": event_repo,
        "billing_webhook": billing_webhook,
        "checkout_broker": checkout_broker,
        "subscription_query": subscription_query,
    }


def _create_usage_services(settings: Settings, subscription_query) -> dict:
    """Create the usage ledger and the entitlement evaluator on top of it."""
    usage_repo = UsageCounterRepository()
    usage_ledger = UsageLedger(repo=usage_repo)
    entitlements = EntitlementEvaluator(
        ledger=usage_ledger,
        subscriptions=subscription_query,
        free_question_limit=settings.FREE_MONTHLY_QUESTION_LIMIT,
    )
    return {
        "usage_repo": usage_repo,
        "usage_ledger": usage_ledger,
        "entitlements": entitlements,
    }
