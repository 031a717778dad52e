"""API endpoints for feature entitlements and usage quotas."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from prepcoach.api import deps
from prepcoach.api.deps import Inject
from prepcoach.domains.usage.protocols import EntitlementEvaluatorProtocol
from prepcoach.domains.usage.types import UsageSnapshot, parse_feature
from prepcoach.schemas.usage import (
    ChargeResponse,
    EntitlementDecision,
    EntitlementRequest,
    UsageResponse,
)

router = APIRouter()


def _usage_fields(snapshot: UsageSnapshot) -> dict:
    return dict(
        user_id=snapshot.user_id,
        feature_type=snapshot.feature_type,
        period_key=snapshot.period_key,
        used=snapshot.used,
        limit=snapshot.limit,
        remaining=snapshot.remaining,
        is_premium=snapshot.is_premium,
    )


@router.post("/check", response_model=EntitlementDecision)
async def check_entitlement(
    request: EntitlementRequest,
    db: AsyncSession = Depends(deps.get_db),
    entitlements: EntitlementEvaluatorProtocol = Inject(EntitlementEvaluatorProtocol),
) -> EntitlementDecision:
    """Check whether the user may use ``count`` units of a feature right now.

    Nothing is charged.
    """
    feature_type = parse_feature(request.feature_type)
    allowed = await entitlements.can_use(
        db, user_id=request.user_id, feature_type=feature_type, count=request.count
    )
    return EntitlementDecision(
        user_id=request.user_id, feature_type=feature_type.value, allowed=allowed
    )


@router.post("/charge", response_model=ChargeResponse)
async def charge_entitlement(
    request: EntitlementRequest,
    db: AsyncSession = Depends(deps.get_db),
    entitlements: EntitlementEvaluatorProtocol = Inject(EntitlementEvaluatorProtocol),
) -> ChargeResponse:
    """Consume ``count`` units of a feature.

    Answers 402 with the exhausted quota when the charge is refused; in
    that case nothing was consumed.
    """
    feature_type = parse_feature(request.feature_type)
    snapshot = await entitlements.charge_or_raise(
        db, user_id=request.user_id, feature_type=feature_type, count=request.count
    )
    return ChargeResponse(**_usage_fields(snapshot))


@router.get("/usage/{user_id}", response_model=UsageResponse)
async def get_usage(
    user_id: str,
    feature_type: str = Query("question", alias="featureType"),
    db: AsyncSession = Depends(deps.get_db),
    entitlements: EntitlementEvaluatorProtocol = Inject(EntitlementEvaluatorProtocol),
) -> UsageResponse:
    """Current-period usage of a feature for a user."""
    snapshot = await entitlements.usage(
        db, user_id=user_id, feature_type=parse_feature(feature_type)
    )
    return UsageResponse(**_usage_fields(snapshot))
