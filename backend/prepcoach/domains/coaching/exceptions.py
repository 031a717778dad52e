"""Coaching domain exceptions."""

from typing import Optional

from prepcoach.core.exceptions import PrepCoachException


class AnalysisFailedError(PrepCoachException):
    """Raised when the model's reply cannot be read as the expected schema."""

    def __init__(self, operation: str, message: Optional[str] = None) -> None:
        """Initialize with the failing operation and an optional detail."""
        self.operation = operation
        self.message = message or f"Failed to parse {operation} results"
        super().__init__(self.message)
