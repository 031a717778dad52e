"""Health check endpoints."""

from fastapi import APIRouter

from prepcoach.api.deps import Inject
from prepcoach.domains.coaching.protocols import CoachingServiceProtocol

router = APIRouter()


@router.get("")
async def health_check(
    coaching: CoachingServiceProtocol = Inject(CoachingServiceProtocol),
) -> dict[str, str]:
    """Check if the API is healthy.

    Returns:
    --------
        dict: Status of the API and whether inference calls are live or mocked.
    """
    return {
        "status": "healthy",
        "inference": "live" if getattr(coaching, "is_live", False) else "mock",
    }
