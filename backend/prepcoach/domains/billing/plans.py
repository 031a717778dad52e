"""Static plan catalog and feature gating rules."""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional


class PlanId(str, Enum):
    """Known plan identifiers."""

    FREE = "free"
    PREMIUM_MONTHLY = "premium_monthly"
    PREMIUM_YEARLY = "premium_yearly"


class FeatureType(str, Enum):
    """Features the entitlement evaluator can gate."""

    QUESTION = "question"
    ANALYSIS = "analysis"
    VOICE = "voice"
    ANALYTICS = "analytics"
    HISTORY = "history"
    CUSTOM = "custom"


PREMIUM_ONLY_FEATURES = frozenset(
    {FeatureType.VOICE, FeatureType.ANALYTICS, FeatureType.HISTORY, FeatureType.CUSTOM}
)


@dataclass(frozen=True)
class Plan:
    """Catalog entry. Immutable at runtime."""

    id: PlanId
    name: str
    description: str
    price: Decimal
    interval: Optional[str]
    monthly_question_limit: Optional[int]
    features: tuple[str, ...]
    limitations: tuple[str, ...] = ()

    @property
    def is_paid(self) -> bool:
        """Whether the plan is billed."""
        return self.price > 0


FREE_PLAN = Plan(
    id=PlanId.FREE,
    name="Free",
    description="Basic features with limited usage",
    price=Decimal("0"),
    interval=None,
    monthly_question_limit=5,
    features=(
        "5 interview questions per month",
        "Basic AI feedback",
        "Text-only interface",
        "Limited question types",
    ),
    limitations=(
        "No voice features",
        "No advanced analytics",
        "Limited question customization",
        "No interview history",
    ),
)

PREMIUM_MONTHLY_PLAN = Plan(
    id=PlanId.PREMIUM_MONTHLY,
    name="Premium Monthly",
    description="Full access with monthly billing",
    price=Decimal("19.99"),
    interval="month",
    monthly_question_limit=None,
    features=(
        "Unlimited interview questions",
        "Advanced AI feedback",
        "Voice mode with 6 AI voices",
        "Detailed analytics",
        "Custom interview configurations",
        "Full interview history",
        "Priority support",
    ),
)

PREMIUM_YEARLY_PLAN = Plan(
    id=PlanId.PREMIUM_YEARLY,
    name="Premium Yearly",
    description="Full access with annual billing (save 17%)",
    price=Decimal("199.99"),
    interval="year",
    monthly_question_limit=None,
    features=(
        "All Premium Monthly features",
        "Save 17% compared to monthly",
        "Early access to new features",
        "Downloadable interview reports",
        "Interview readiness score",
    ),
)

PLAN_CATALOG: dict[PlanId, Plan] = {
    plan.id: plan for plan in (FREE_PLAN, PREMIUM_MONTHLY_PLAN, PREMIUM_YEARLY_PLAN)
}


def get_plan(plan_id: str) -> Plan:
    """Look up a plan; unknown ids resolve to the free plan."""
    try:
        return PLAN_CATALOG[PlanId(plan_id)]
    except ValueError:
        return FREE_PLAN


def is_paid_plan(plan_id: str) -> bool:
    """Check if a plan id names a paid plan."""
    return get_plan(plan_id).is_paid


def free_limit(feature: FeatureType, question_limit: int) -> Optional[int]:
    """Free-tier ceiling for ``feature`` per period.

    ``None`` means unmetered; ``0`` means premium only.
    """
    if feature == FeatureType.QUESTION:
        return question_limit
    if feature in PREMIUM_ONLY_FEATURES:
        return 0
    return None
