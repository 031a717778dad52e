"""Database session configuration.

The engine and session factory are built once at startup from ``Settings``
(see ``prepcoach.core.container.factory``) rather than at import time.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from prepcoach.core.config import Settings


def build_engine(settings: Settings) -> AsyncEngine:
    """Create the application engine.

    Pool is sized per process; ``pool_timeout`` bounds how long a request
    waits for a connection before failing.
    """
    connect_args: dict = {
        "server_settings": {
            # Kill idle transactions after 5 minutes
            "idle_in_transaction_session_timeout": "300000",
        },
        "command_timeout": 60,
    }
    if settings.POSTGRES_SSLMODE == "disable":
        connect_args["ssl"] = False

    return create_async_engine(
        str(settings.SQLALCHEMY_ASYNC_DATABASE_URI),
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_pool_max_overflow,
        pool_pre_ping=True,
        pool_recycle=300,  # Recycle connections after 5 minutes
        pool_timeout=30,
        isolation_level="READ COMMITTED",
        connect_args=connect_args,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to ``engine``."""
    return async_sessionmaker(
        autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
    )

