"""API test fixtures.

Provides an async HTTP client wired to the FastAPI app with the DI container
overridden to use fakes. Available to all colocated API tests under api/.

Pattern:
    1. Override get_container -> returns test_container (all fakes)
    2. Override get_db        -> yields an AsyncMock session
    3. Test hits the endpoint, asserts on HTTP response + fake state
"""

from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from prepcoach.api.deps import get_container, get_db

API_PREFIX = "/api/v1"


@pytest.fixture
def fake_db() -> AsyncMock:
    """Session stand-in handed to every endpoint."""
    return AsyncMock()


@pytest_asyncio.fixture
async def client(test_container, fake_db):
    """Async HTTP client with faked DI container and database session."""
    from prepcoach.main import app

    async def _get_db():
        yield fake_db

    app.dependency_overrides[get_container] = lambda: test_container
    app.dependency_overrides[get_db] = _get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url=f"http://test{API_PREFIX}") as ac:
        yield ac

    app.dependency_overrides.clear()
