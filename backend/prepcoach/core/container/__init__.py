"""Dependency Injection Container Module.

This module provides the DI container and factory for wiring dependencies
across the application.

Usage:
------
    # Initialize at startup (call once from main.py lifespan)
    from prepcoach.core.container import initialize_container
    from prepcoach.core.config import settings
    initialize_container(settings)

    # In FastAPI deps.py
    def get_container() -> Container:
        return container

    # In tests (construct directly with fakes, don't use global)
    from prepcoach.core.container import Container
    test_container = Container(
        session_factory=...,
        payment_gateway=FakePaymentGateway(),
        ...
    )

Module structure:
-----------------
    container/
    ├── __init__.py      # This file - exports public API
    ├── container.py     # Container dataclass (serves)
    └── factory.py       # create_container() (builds)
"""

from typing import TYPE_CHECKING, Optional

from prepcoach.core.container.container import Container
from prepcoach.core.container.factory import create_container

if TYPE_CHECKING:
    from prepcoach.core.config import Settings

__all__ = ["Container", "create_container", "container", "initialize_container"]


# ---------------------------------------------------------------------------
# Global container instance
# ---------------------------------------------------------------------------

container: Optional[Container] = None
"""Global container instance.

Initialized via `initialize_container()` at application startup.

Do NOT import this in domain code. Domains receive dependencies
via constructor parameters, never by importing the container directly.
"""


def initialize_container(settings: "Settings") -> None:
    """Initialize the global container. Call once at startup.

    Args:
        settings: Application settings from core/config

    Raises:
        RuntimeError: If called more than once (container already initialized)
    """
    global container

    if container is not None:
        raise RuntimeError(
            "Container already initialized. "
            "initialize_container() should only be called once at startup."
        )

    container = create_container(settings)


def set_container(value: Optional[Container]) -> None:
    """Install ``value`` as the global container. For testing only.

    Passing None resets it so tests can reinitialize with different fakes.
    """
    global container
    container = value
