"""Retry logic using tenacity.

Transient Management API failures (network errors, timeouts, 5xx and 429
responses) are retried with jittered exponential backoff, bounded both by the
number of attempts and by the cumulative wait time. Anything that still fails
surfaces to the caller, where it is terminal for the restore run.
"""

from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    stop_after_delay,
    wait_random_exponential,
)

from kontent_restore.client.exceptions import NetworkError, RateLimitError, ServerError
from kontent_restore.utils.logging import get_logger

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (NetworkError, ServerError, RateLimitError)


def retry_with_backoff(
    max_attempts: int = 3,
    min_wait: float = 1,
    max_wait: float = 30,
    max_total_wait: float = 60,
    retry_on_exceptions: tuple[type[BaseException], ...] = TRANSIENT_ERRORS,
) -> Callable[[F], F]:
    """Retry decorator for coroutines with exponential backoff and jitter.

    Args:
        max_attempts: Maximum number of attempts (including the first one)
        min_wait: Minimum wait between attempts in seconds
        max_wait: Maximum wait between attempts in seconds
        max_total_wait: Stop retrying once this many seconds have elapsed
        retry_on_exceptions: Exception types that trigger a retry

    Returns:
        Decorated coroutine function with retry logic
    """

    def decorator(func: F) -> F:
        @wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            async for attempt_obj in AsyncRetrying(
                stop=stop_after_attempt(max_attempts) | stop_after_delay(max_total_wait),
                wait=wait_random_exponential(multiplier=min_wait, min=min_wait, max=max_wait),
                retry=retry_if_exception_type(retry_on_exceptions),
                reraise=True,
            ):
                with attempt_obj:
                    attempt = attempt_obj.retry_state.attempt_number
                    if attempt > 1:
                        logger.info(
                            "retry_attempt",
                            function=func.__name__,
                            attempt=attempt,
                            max_attempts=max_attempts,
                        )
                    return await func(*args, **kwargs)

        return async_wrapper  # type: ignore

    return decorator
