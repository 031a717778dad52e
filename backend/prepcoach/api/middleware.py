"""Middleware for the FastAPI application.

This module contains middleware that process requests and responses, and the
exception handlers that turn domain errors into HTTP answers.
"""

import time
import traceback
import uuid

from fastapi import Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from prepcoach.core.config import settings
from prepcoach.core.exceptions import (
    ExternalServiceError,
    InvalidStateError,
    InvocationCancelledError,
    NotFoundException,
    PrepCoachException,
    StorageUnavailableError,
    UpstreamUnavailableError,
    unpack_validation_error,
)
from prepcoach.core.exceptions import ValidationError as InputValidationError
from prepcoach.core.logging import logger
from prepcoach.domains.billing.exceptions import BillingNotAvailableError
from prepcoach.domains.coaching.exceptions import AnalysisFailedError
from prepcoach.domains.usage.exceptions import UsageLimitExceededError


async def add_request_id(request: Request, call_next: callable) -> Response:
    """Middleware to generate and add a request ID to the request for tracing.

    Args:
    ----
        request (Request): The incoming request.
        call_next (callable): The next middleware in the chain.

    Returns:
    -------
        Response: The response to the incoming request, carrying ``X-Request-ID``.

    """
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


async def log_requests(request: Request, call_next: callable) -> Response:
    """Middleware to log incoming requests.

    Args:
    ----
        request (Request): The incoming request.
        call_next (callable): The next middleware in the chain.

    Returns:
    -------
        Response: The response to the incoming request.

    """
    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time
    request_logger = logger.with_context(request_id=getattr(request.state, "request_id", None))
    request_logger.info(
        (
            f"Handled request {request.method} {request.url.path} in {duration:.2f} seconds. "
            f"Response code: {response.status_code}"
        )
    )
    return response


async def exception_logging_middleware(request: Request, call_next: callable) -> Response:
    """Middleware to log unhandled exceptions.

    Args:
    ----
        request (Request): The incoming request.
        call_next (callable): The next middleware in the chain.

    Returns:
    -------
        Response: The response to the incoming request.

    """
    try:
        response = await call_next(request)
        return response
    except Exception as exc:
        logger.error(f"Unhandled exception: {exc}\n{traceback.format_exc()}")

        error_message = f"Internal Server Error: {exc.__class__.__name__}: {str(exc)}"
        response_content = {"detail": error_message}

        # Stack traces only leave the process in debug mode
        if settings.DEBUG:
            response_content["trace"] = traceback.format_exc()

        return JSONResponse(status_code=500, content=response_content)


# Exception handlers
async def validation_exception_handler(
    request: Request, exc: RequestValidationError | ValidationError
) -> JSONResponse:
    """Exception handler for request bodies that fail schema validation.

    Args:
    ----
        request (Request): The incoming request that triggered the exception.
        exc (RequestValidationError | ValidationError): The exception object that was raised.

    Returns:
    -------
        JSONResponse: A 400 Bad Request response listing each invalid field.

    Example of JSON output:
        {
            "detail": "Invalid request",
            "errors": [
                {"body.userId": "Field required"},
                {"body.count": "Input should be greater than or equal to 1"}
            ]
        }

    """
    error_messages = unpack_validation_error(exc)
    logger.warning(f"Validation error on {request.method} {request.url.path}: {error_messages}")
    return JSONResponse(status_code=400, content={"detail": "Invalid request", **error_messages})


async def bad_request_exception_handler(
    request: Request, exc: InputValidationError
) -> JSONResponse:
    """Exception handler for input rejected by a domain service.

    Returns:
    -------
        JSONResponse: A 400 Bad Request status response that details the error message.

    """
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def not_found_exception_handler(request: Request, exc: NotFoundException) -> JSONResponse:
    """Exception handler for NotFoundException.

    Args:
    ----
        request (Request): The incoming request that triggered the exception.
        exc (NotFoundException): The exception object that was raised.

    Returns:
    -------
        JSONResponse: A 404 Not Found status response that details the error message.

    """
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def usage_limit_exceeded_exception_handler(
    request: Request, exc: UsageLimitExceededError
) -> JSONResponse:
    """Exception handler for UsageLimitExceededError.

    Args:
    ----
        request (Request): The incoming request that triggered the exception.
        exc (UsageLimitExceededError): The exception object that was raised.

    Returns:
    -------
        JSONResponse: A 402 Payment Required response with the exhausted quota.

    """
    return JSONResponse(
        status_code=402,
        content={
            "detail": str(exc),
            "featureType": exc.feature_type,
            "limit": exc.limit,
            "currentUsage": exc.current_usage,
        },
    )


async def billing_not_available_exception_handler(
    request: Request, exc: BillingNotAvailableError
) -> JSONResponse:
    """Billing endpoints answer 503 when no payment platform is configured."""
    return JSONResponse(status_code=503, content={"detail": str(exc)})


async def invalid_state_exception_handler(request: Request, exc: InvalidStateError) -> JSONResponse:
    """Exception handler for InvalidStateError.

    Args:
    ----
        request (Request): The incoming request that triggered the exception.
        exc (InvalidStateError): The exception object that was raised.

    Returns:
    -------
        JSONResponse: A 400 Bad Request status response that details the error message.

    """
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def prepcoach_exception_handler(request: Request, exc: PrepCoachException) -> JSONResponse:
    """Generic exception handler for all PrepCoachException types.

    Maps exception types to HTTP status codes. Entries are checked in order,
    so more specific classes must come before their bases.

    Note: ValidationError, NotFoundException and InvalidStateError have dedicated
    handlers registered before this one, so their subclasses won't reach here.
    """
    status_map = {
        InvocationCancelledError: 504,
        UpstreamUnavailableError: 503,
        StorageUnavailableError: 503,
        AnalysisFailedError: 500,
        ExternalServiceError: 502,
    }

    for exc_type, code in status_map.items():
        if isinstance(exc, exc_type):
            if code >= 500:
                logger.warning(f"{exc.__class__.__name__} answered with {code}: {exc}")
            return JSONResponse(status_code=code, content={"detail": str(exc)})

    # Default for unmapped PrepCoachException subclasses
    logger.error(f"Unmapped {exc.__class__.__name__}: {exc}")
    return JSONResponse(status_code=500, content={"detail": str(exc)})
