"""Main module of the FastAPI application.

This module sets up the FastAPI application and the middleware to log incoming requests
and unhandled exceptions.
"""

import os
import subprocess
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from prepcoach.api.middleware import (
    add_request_id,
    bad_request_exception_handler,
    billing_not_available_exception_handler,
    exception_logging_middleware,
    invalid_state_exception_handler,
    log_requests,
    not_found_exception_handler,
    prepcoach_exception_handler,
    usage_limit_exceeded_exception_handler,
    validation_exception_handler,
)
from prepcoach.api.v1.api import api_router
from prepcoach.core.config import settings
from prepcoach.core.exceptions import (
    InvalidStateError,
    NotFoundException,
    PrepCoachException,
)
from prepcoach.core.exceptions import ValidationError as InputValidationError
from prepcoach.core.logging import configure_logging, logger
from prepcoach.domains.billing.exceptions import BillingNotAvailableError
from prepcoach.domains.usage.exceptions import UsageLimitExceededError


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events.

    Initializes the DI container and runs alembic migrations; disposes the
    database engine on shutdown.
    """
    from prepcoach.core import container as container_mod
    from prepcoach.core.container import initialize_container

    configure_logging(settings.LOG_LEVEL, json_output=not settings.is_local)

    logger.info("Initializing dependency injection container...")
    initialize_container(settings)
    logger.info("Container initialized successfully")

    if not settings.inference_enabled:
        logger.warning("ANTHROPIC_API_KEY not set; coaching endpoints return mock payloads")

    if settings.RUN_ALEMBIC_MIGRATIONS:
        logger.info("Running alembic migrations...")
        env = os.environ.copy()
        backend_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        env["PYTHONPATH"] = backend_dir
        subprocess.run(
            [sys.executable, "-m", "alembic", "upgrade", "head"],
            check=True,
            cwd=backend_dir,
            env=env,
        )

    yield

    engine = container_mod.container.engine if container_mod.container else None
    if engine is not None:
        await engine.dispose()
    container_mod.set_container(None)


app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.include_router(api_router, prefix=settings.API_V1_STR)

# Register middleware directly in the correct order
# Order matters: first registered = outermost middleware (processes request first)
app.middleware("http")(add_request_id)
app.middleware("http")(log_requests)
app.middleware("http")(exception_logging_middleware)

# Register exception handlers
app.exception_handler(RequestValidationError)(validation_exception_handler)
app.exception_handler(ValidationError)(validation_exception_handler)
app.exception_handler(InputValidationError)(bad_request_exception_handler)
app.exception_handler(NotFoundException)(not_found_exception_handler)
app.exception_handler(UsageLimitExceededError)(usage_limit_exceeded_exception_handler)
app.exception_handler(BillingNotAvailableError)(billing_not_available_exception_handler)
app.exception_handler(InvalidStateError)(invalid_state_exception_handler)

# Register custom PrepCoach exception handler
app.exception_handler(PrepCoachException)(prepcoach_exception_handler)
