"""Translation of driver-level connectivity failures into domain errors."""

import functools

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError

from prepcoach.core.exceptions import StorageUnavailableError
from prepcoach.core.logging import logger


def _is_connectivity_error(exc: DBAPIError) -> bool:
    return isinstance(exc, (OperationalError, InterfaceError)) or bool(
        exc.connection_invalidated
    )


def translate_storage_errors(fn):
    """Decorator: re-raise connectivity failures as StorageUnavailableError.

    Constraint violations and programming errors pass through unchanged.
    """

    @functools.wraps(fn)
    async def wrapper(*args, **kwargs):
        try:
            return await fn(*args, **kwargs)
        except DBAPIError as e:
            if not _is_connectivity_error(e):
                raise
            logger.error(f"Storage unavailable in {fn.__qualname__}: {e.orig or e}")
            raise StorageUnavailableError(f"Storage unavailable: {type(e).__name__}") from e
        except ConnectionError as e:
            logger.error(f"Storage unavailable in {fn.__qualname__}: {e}")
            raise StorageUnavailableError(f"Storage unavailable: {type(e).__name__}") from e

    return wrapper
