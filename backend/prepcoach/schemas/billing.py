"""Billing API schemas."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from prepcoach.schemas._base import CamelModel


class CheckoutSessionRequest(CamelModel):
    """Start a hosted checkout for a plan price."""

    user_id: str = Field(..., min_length=1)
    price_id: str = Field(..., min_length=1)
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None


class CheckoutSessionResponse(CamelModel):
    session_id: str
    url: str


class PortalSessionRequest(CamelModel):
    """Open the customer billing portal."""

    user_id: str = Field(..., min_length=1)
    return_url: Optional[str] = None


class PortalSessionResponse(CamelModel):
    url: str


class WebhookAck(CamelModel):
    """Acknowledgement returned to the billing platform."""

    received: bool = True
    duplicate: bool = False


class PlanResponse(CamelModel):
    """A catalog plan."""

    id: str
    name: str
    description: str
    price: Decimal
    interval: Optional[str] = None
    monthly_question_limit: Optional[int] = Field(
        None, description="Questions per month; null means unlimited"
    )
    features: List[str]


class SubscriptionResponse(CamelModel):
    """Effective subscription of a user."""

    user_id: str
    plan_id: str
    status: str
    is_premium: bool
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False


class SubscriptionAnalyticsResponse(CamelModel):
    """Billing history summary of a user."""

    user_id: str
    subscription_start: Optional[datetime] = None
    total_spent: Decimal
    upgrades: int
    renewals: int
    event_count: int
