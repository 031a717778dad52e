"""Usage domain exceptions."""

from typing import Optional

from prepcoach.core.exceptions import InvalidStateError


class UsageLimitExceededError(InvalidStateError):
    """Raised when a charge would exceed the user's quota for the period."""

    def __init__(
        self,
        feature_type: str,
        limit: Optional[int],
        current_usage: int,
        message: Optional[str] = None,
    ) -> None:
        """Initialize with feature type, limit, and current usage."""
        if message is None:
            message = f"Usage limit exceeded for {feature_type}: {current_usage}/{limit}"
        self.feature_type = feature_type
        self.limit = limit
        self.current_usage = current_usage
        super().__init__(message)
