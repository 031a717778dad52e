"""Retrying wrapper for outbound calls to rate-limited external services.

``ResilientInvoker`` runs an async operation, classifies each failure, and
retries retryable failures with exponential backoff (``base * 2^(k-1)``
before attempt ``k``). A caller may pass a deadline or an ``asyncio.Event``;
either one aborts the wait between attempts so no new attempt starts after
cancellation. The invoker holds no per-call state and is safe to share.
"""

import asyncio
import time
from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from prepcoach.core.exceptions import (
    InvocationCancelledError,
    UpstreamRetryableError,
    UpstreamUnavailableError,
)
from prepcoach.core.logging import ContextualLogger
from prepcoach.core.logging import logger as default_logger

T = TypeVar("T")


class Classification(str, Enum):
    """Outcome of classifying a failed attempt."""

    RETRYABLE = "retryable"
    FATAL = "fatal"


Classifier = Callable[[BaseException], Classification]


def _is_retryable_status(status_code: Optional[int]) -> bool:
    return status_code is not None and (status_code == 429 or status_code >= 500)


def _status_code_of(exception: BaseException) -> Optional[int]:
    """Pull an HTTP status code off the error types the adapters can raise."""
    if isinstance(exception, UpstreamRetryableError):
        return exception.status_code if exception.status_code is not None else 503
    if isinstance(exception, httpx.HTTPStatusError):
        return exception.response.status_code
    # stripe.StripeError exposes http_status, anthropic.APIStatusError exposes status_code
    for attr in ("status_code", "http_status"):
        value = getattr(exception, attr, None)
        if isinstance(value, int):
            return value
    return None


def should_retry_on_timeout(exception: BaseException) -> bool:
    """Check if exception is a timeout or connection error that should be retried."""
    return isinstance(
        exception,
        (
            asyncio.TimeoutError,
            httpx.ConnectTimeout,
            httpx.ReadTimeout,
            httpx.WriteTimeout,
            httpx.PoolTimeout,
            httpx.ConnectError,
        ),
    )


def default_classify(exception: BaseException) -> Classification:
    """HTTP 429 and 5xx are retryable, as are timeouts. Everything else is fatal."""
    if isinstance(exception, InvocationCancelledError):
        return Classification.FATAL
    if _is_retryable_status(_status_code_of(exception)):
        return Classification.RETRYABLE
    if should_retry_on_timeout(exception):
        return Classification.RETRYABLE
    return Classification.FATAL


class ResilientInvoker:
    """Executes async operations with classified retries and exponential backoff.

    Args:
        service_name: Name used in errors and log dimensions.
        max_retries: Retries after the initial attempt (total attempts = max_retries + 1).
        base_delay_ms: Delay before the first retry; doubles for each later retry.
        classify: Default failure classifier.
        logger: Logger used for retry warnings.
        sleep: Coroutine used to wait between attempts when no cancel signal is given.
    """

    def __init__(
        self,
        service_name: str,
        *,
        max_retries: int = 3,
        base_delay_ms: int = 1000,
        classify: Classifier = default_classify,
        logger: Optional[ContextualLogger] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the invoker with default retry policy."""
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if base_delay_ms < 0:
            raise ValueError("base_delay_ms must be >= 0")
        self._service_name = service_name
        self._max_retries = max_retries
        self._base_delay_ms = base_delay_ms
        self._classify = classify
        self._sleep = sleep
        self._logger = (logger or default_logger).with_context(service=service_name)

    @property
    def service_name(self) -> str:
        """Name of the external service this invoker guards."""
        return self._service_name

    async def invoke(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        classify: Optional[Classifier] = None,
        max_retries: Optional[int] = None,
        base_delay_ms: Optional[int] = None,
        deadline: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> T:
        """Run ``operation`` until it succeeds, fails fatally, or retries run out.

        Args:
            operation: Zero-argument coroutine factory; called once per attempt.
            classify: Override the invoker's classifier for this call.
            max_retries: Override the retry count for this call.
            base_delay_ms: Override the base delay for this call.
            deadline: Absolute ``time.monotonic()`` value after which no
                further attempt starts.
            cancel_event: When set, the pending backoff wait aborts.

        Returns:
            The operation's result.

        Raises:
            UpstreamUnavailableError: A retryable failure persisted through every attempt.
            InvocationCancelledError: The deadline passed or ``cancel_event`` was set.
            Exception: Any fatal failure, re-raised unchanged on first occurrence.
        """
        classify = classify or self._classify
        retries = self._max_retries if max_retries is None else max_retries
        base_ms = self._base_delay_ms if base_delay_ms is None else base_delay_ms
        attempts = 0
        last_error: Optional[BaseException] = None

        def _cancelled(reason: str) -> InvocationCancelledError:
            return InvocationCancelledError(self._service_name, attempts, reason)

        def _check_cancelled() -> None:
            if cancel_event is not None and cancel_event.is_set():
                raise _cancelled("cancelled") from last_error
            if deadline is not None and time.monotonic() >= deadline:
                raise _cancelled("deadline") from last_error

        async def _sleep(seconds: float) -> None:
            if deadline is not None and time.monotonic() + seconds > deadline:
                raise _cancelled("deadline") from last_error
            if cancel_event is None:
                await self._sleep(seconds)
                return
            try:
                await asyncio.wait_for(cancel_event.wait(), timeout=seconds)
            except asyncio.TimeoutError:
                return
            raise _cancelled("cancelled") from last_error

        def _log_retry(retry_state: RetryCallState) -> None:
            nonlocal last_error
            exc = retry_state.outcome.exception() if retry_state.outcome else None
            last_error = exc
            wait = retry_state.next_action.sleep if retry_state.next_action else 0
            self._logger.warning(
                f"Retrying {self._service_name} call "
                f"(attempt {retry_state.attempt_number}/{retries + 1}) "
                f"after {type(exc).__name__}: {exc}. Waiting {wait:.2f}s"
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(retries + 1),
            wait=wait_exponential(multiplier=base_ms / 1000, exp_base=2, min=0),
            retry=retry_if_exception(lambda e: classify(e) is Classification.RETRYABLE),
            before_sleep=_log_retry,
            sleep=_sleep,
            reraise=True,
        )

        try:
            async for attempt in retrying:
                _check_cancelled()
                with attempt:
                    attempts += 1
                    return await operation()
        except InvocationCancelledError:
            raise
        except Exception as exc:
            if classify(exc) is Classification.RETRYABLE:
                self._logger.error(
                    f"{self._service_name} call failed after {attempts} attempts: {exc}"
                )
                raise UpstreamUnavailableError(self._service_name, attempts) from exc
            raise
        raise AssertionError("retry loop exited without a result")  # pragma: no cover
