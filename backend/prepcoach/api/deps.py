"""Dependencies that are used in the API endpoints."""

from typing import AsyncGenerator, get_type_hints

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from prepcoach.core import container as container_mod
from prepcoach.core.container import Container


def get_container() -> Container:
    """Get the DI container. Initialized at startup."""
    c = container_mod.container
    if c is None:
        raise RuntimeError("Container not initialized. Call initialize_container() first.")
    return c


async def get_db(
    c: Container = Depends(get_container),
) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session to be used in dependency injection.

    Yields:
    ------
        AsyncSession: An async database session

    """
    async with c.session_factory() as db:
        yield db


# ---------------------------------------------------------------------------
# Protocol Injection
# ---------------------------------------------------------------------------

# Cache of protocol_type → Container field name, built once at first call.
_INJECT_CACHE: dict[type, str] = {}


def _resolve_field_name(protocol_type: type) -> str:
    """Find which Container field matches the given protocol type.

    Uses get_type_hints() to introspect the Container dataclass.
    Result is cached so the lookup happens at most once per protocol type.
    """
    if not _INJECT_CACHE:
        for name, hint in get_type_hints(Container).items():
            _INJECT_CACHE[hint] = name

    field_name = _INJECT_CACHE.get(protocol_type)
    if field_name is None:
        available = list(_INJECT_CACHE.values())
        raise TypeError(
            f"No binding for {protocol_type.__name__} in Container. Available fields: {available}"
        )
    return field_name


def Inject(protocol_type: type):  # noqa: N802
    """Resolve a protocol implementation from the DI container.

    Works like ``Depends()`` but looks up the implementation by protocol type
    instead of requiring the caller to know about the Container internals.

    Usage in FastAPI endpoints::

        from prepcoach.api.deps import Inject
        from prepcoach.domains.usage.protocols import EntitlementEvaluatorProtocol


        @router.post("/check")
        async def check(
            entitlements: EntitlementEvaluatorProtocol = Inject(EntitlementEvaluatorProtocol),
        ):
            ...
    """
    field_name = _resolve_field_name(protocol_type)

    def _resolve(c: Container = Depends(get_container)):
        return getattr(c, field_name)

    return Depends(_resolve)
