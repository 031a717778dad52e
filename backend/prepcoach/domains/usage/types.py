"""Usage domain value types and helpers."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from prepcoach.core.exceptions import ValidationError
from prepcoach.domains.billing.plans import FeatureType


def period_key(now: datetime) -> str:
    """Billing period key for ``now``: the UTC calendar month as ``YYYY-MM``."""
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return f"{now.year:04d}-{now.month:02d}"


def parse_feature(value: str) -> FeatureType:
    """Resolve a feature name, raising ValidationError for unknown ones."""
    try:
        return FeatureType(value)
    except ValueError:
        raise ValidationError(f"Unknown feature type: {value!r}") from None


def validate_count(count: int) -> None:
    """Charges and checks are for a positive number of units."""
    if isinstance(count, bool) or not isinstance(count, int) or count < 1:
        raise ValidationError("count must be a positive integer")


@dataclass(frozen=True)
class UsageSnapshot:
    """Current-period consumption of one feature, as shown to the user.

    ``limit`` and ``remaining`` are None when the feature is unmetered for
    this user (premium plans, or unmetered free features).
    """

    user_id: str
    feature_type: str
    period_key: str
    used: int
    limit: Optional[int]
    is_premium: bool

    @property
    def remaining(self) -> Optional[int]:
        if self.limit is None:
            return None
        return max(self.limit - self.used, 0)
