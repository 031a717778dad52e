"""API endpoints for billing operations.

This module provides the HTTP interface for billing operations,
delegating all business logic to the billing domain.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Header, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from prepcoach.api import deps
from prepcoach.api.deps import Inject
from prepcoach.core.logging import logger
from prepcoach.domains.billing.exceptions import SignatureError
from prepcoach.domains.billing.plans import PLAN_CATALOG
from prepcoach.domains.billing.protocols import (
    BillingWebhookProtocol,
    CheckoutBrokerProtocol,
    SubscriptionQueryProtocol,
)
from prepcoach.schemas.billing import (
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    PlanResponse,
    PortalSessionRequest,
    PortalSessionResponse,
    SubscriptionAnalyticsResponse,
    SubscriptionResponse,
    WebhookAck,
)

router = APIRouter()


@router.post("/checkout-session", response_model=CheckoutSessionResponse)
async def create_checkout_session(
    request: CheckoutSessionRequest,
    db: AsyncSession = Depends(deps.get_db),
    broker: CheckoutBrokerProtocol = Inject(CheckoutBrokerProtocol),
) -> CheckoutSessionResponse:
    """Create a hosted checkout session for a subscription price.

    The billing customer for the user is looked up, or created once and
    stored, before the session is opened.

    Args:
        request: User, price and optional redirect URLs
        db: Database session
        broker: Checkout broker

    Returns:
        Session id and the URL to redirect the user to
    """
    session = await broker.create_checkout_session(
        db,
        user_id=request.user_id,
        price_id=request.price_id,
        success_url=request.success_url,
        cancel_url=request.cancel_url,
    )
    return CheckoutSessionResponse(session_id=session.session_id, url=session.url)


@router.post("/portal-session", response_model=PortalSessionResponse)
async def create_portal_session(
    request: PortalSessionRequest,
    db: AsyncSession = Depends(deps.get_db),
    broker: CheckoutBrokerProtocol = Inject(CheckoutBrokerProtocol),
) -> PortalSessionResponse:
    """Create a customer portal session.

    The customer portal allows users to:
    - Update payment methods
    - Download invoices
    - Cancel subscription

    Returns 404 when the user has no billing customer on file.
    """
    url = await broker.create_portal_session(
        db, user_id=request.user_id, return_url=request.return_url
    )
    return PortalSessionResponse(url=url)


@router.get("/plans", response_model=List[PlanResponse])
async def list_plans() -> List[PlanResponse]:
    """List the plan catalog."""
    return [
        PlanResponse(
            id=plan.id.value,
            name=plan.name,
            description=plan.description,
            price=plan.price,
            interval=plan.interval,
            monthly_question_limit=plan.monthly_question_limit,
            features=list(plan.features),
        )
        for plan in PLAN_CATALOG.values()
    ]


@router.get("/subscription/{user_id}", response_model=SubscriptionResponse)
async def get_subscription(
    user_id: str,
    db: AsyncSession = Depends(deps.get_db),
    subscriptions: SubscriptionQueryProtocol = Inject(SubscriptionQueryProtocol),
) -> SubscriptionResponse:
    """Get the effective subscription of a user.

    Users without a subscription record are reported on the free plan.
    """
    snapshot = await subscriptions.get_subscription(db, user_id=user_id)
    return SubscriptionResponse(
        user_id=snapshot.user_id,
        plan_id=snapshot.plan_id,
        status=snapshot.status,
        is_premium=snapshot.is_premium,
        current_period_start=snapshot.current_period_start,
        current_period_end=snapshot.current_period_end,
        cancel_at_period_end=snapshot.cancel_at_period_end,
    )


@router.get("/analytics/{user_id}", response_model=SubscriptionAnalyticsResponse)
async def get_subscription_analytics(
    user_id: str,
    db: AsyncSession = Depends(deps.get_db),
    subscriptions: SubscriptionQueryProtocol = Inject(SubscriptionQueryProtocol),
) -> SubscriptionAnalyticsResponse:
    """Summarize a user's billing history from the processed event log."""
    analytics = await subscriptions.get_analytics(db, user_id=user_id)
    return SubscriptionAnalyticsResponse(
        user_id=analytics.user_id,
        subscription_start=analytics.subscription_start,
        total_spent=analytics.total_spent,
        upgrades=analytics.upgrades,
        renewals=analytics.renewals,
        event_count=analytics.event_count,
    )


@router.post("/webhook", include_in_schema=False)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None),
    db: AsyncSession = Depends(deps.get_db),
    webhook: BillingWebhookProtocol = Inject(BillingWebhookProtocol),
) -> Response:
    """Handle Stripe webhook events.

    Security:
    - Verifies webhook signature (inside processor)
    - Idempotent processing: redeliveries are acknowledged without side effects

    Args:
        request: Raw HTTP request
        stripe_signature: Stripe signature header
        db: Database session
        webhook: Webhook processor (handles signature verification + processing)

    Returns:
        200 ``{"received": true}`` on success, 400 on a missing or invalid signature,
        500 on processing error so the sender retries
    """
    payload = await request.body()

    try:
        result = await webhook.process_webhook(db, payload, stripe_signature or "")
    except SignatureError as e:
        return JSONResponse(status_code=400, content={"detail": str(e)})
    except Exception as e:
        logger.error(f"Webhook processing failed: {e.__class__.__name__}: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"detail": "Webhook processing failed"})

    ack = WebhookAck(received=True, duplicate=result.duplicate)
    return JSONResponse(status_code=200, content=ack.model_dump(by_alias=True))
