"""Entitlement API schemas."""

from typing import Optional

from pydantic import Field

from prepcoach.schemas._base import CamelModel


class EntitlementRequest(CamelModel):
    """Check or charge ``count`` units of a feature for a user."""

    user_id: str = Field(..., min_length=1)
    feature_type: str = Field(..., min_length=1, examples=["question"])
    count: int = Field(1, ge=1)


class EntitlementDecision(CamelModel):
    """Result of an entitlement check."""

    user_id: str
    feature_type: str
    allowed: bool


class UsageResponse(CamelModel):
    """Current-period usage of a feature."""

    user_id: str
    feature_type: str
    period_key: str
    used: int
    limit: Optional[int] = None
    remaining: Optional[int] = None
    is_premium: bool


class ChargeResponse(UsageResponse):
    charged: bool = True
