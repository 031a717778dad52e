"""Unit of work: one transaction spanning several repository calls."""

from types import TracebackType
from typing import Optional, Type

from sqlalchemy.ext.asyncio import AsyncSession

from prepcoach.core.logging import logger


class UnitOfWork:
    """Wrap a session so repositories defer commit to the caller.

    Repositories that receive ``uow`` flush instead of committing. Leaving
    the block without ``commit()`` (or with an exception) rolls back.

    Usage:
        async with UnitOfWork(db) as uow:
            await repo_a.insert(db, ..., uow=uow)
            await repo_b.upsert(db, ..., uow=uow)
            await uow.commit()
    """

    def __init__(self, session: AsyncSession):
        """Bind to ``session``."""
        self.session = session
        self._committed = False

    async def __aenter__(self) -> "UnitOfWork":
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        if exc_type is not None or not self._committed:
            if exc_type is not None:
                logger.debug(f"Rolling back unit of work after {exc_type.__name__}")
            await self.rollback()

    async def commit(self) -> None:
        """Commit the session."""
        await self.session.commit()
        self._committed = True

    async def rollback(self) -> None:
        """Roll back the session."""
        await self.session.rollback()
