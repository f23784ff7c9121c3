"""Retry/backoff combinator shared by every external-service call site."""
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
)

from .exceptions import GenerationServiceError, ParseError, VectorServiceError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_ATTEMPTS = 3
DEFAULT_DELAY = 1.0


def is_retryable_error(exception: BaseException) -> bool:
    """Only transient service errors are retried; parse errors go to fallbacks."""
    if isinstance(exception, ParseError):
        return False
    if isinstance(exception, (GenerationServiceError, VectorServiceError)):
        return exception.retryable
    return False


async def call_with_retry(
    func: Callable[[], Awaitable[T]],
    attempts: int = DEFAULT_ATTEMPTS,
    delay: float = DEFAULT_DELAY,
    retryable: Callable[[BaseException], bool] = is_retryable_error,
    sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
) -> T:
    """
    Awaits ``func()`` up to ``attempts`` times with linear backoff.

    The wait before retry n is ``n * delay`` seconds (1s, 2s for the defaults).
    The last error is re-raised unchanged once attempts are exhausted or as
    soon as ``retryable`` rejects it.
    """
    options = {}
    if sleep is not None:
        options["sleep"] = sleep
    retrying = AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_incrementing(start=delay, increment=delay),
        retry=retry_if_exception(retryable),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
        **options,
    )

    # tenacity only awaits coroutine functions; callers pass plain lambdas.
    async def attempt():
        return await func()

    return await retrying(attempt)
