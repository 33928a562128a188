"""
Bounded retry with exponential backoff for datastore loading.

A run loads its sponsor and target sets once; a short retry rides out a
flapping connection, and exhausting the retries turns the failure fatal
instead of retrying forever.
"""

import functools
import time
from typing import Any, Callable, Optional, Tuple, Type


class RetryError(Exception):
    """Raised when all retry attempts are exhausted."""
    pass


def exponential_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    on_retry: Optional[Callable] = None,
):
    """
    Decorator for retrying functions with exponential backoff.

    Args:
        max_retries: Maximum number of retry attempts (0 = no retries)
        base_delay: Initial delay in seconds
        max_delay: Maximum delay between retries in seconds
        exponential_base: Base for exponential calculation (delay *= base)
        exceptions: Tuple of exceptions to catch and retry
        on_retry: Optional callback function(attempt, exception, delay)

    Example:
        @exponential_backoff(max_retries=2, exceptions=(DatastoreConnectionError,))
        def load_sponsors():
            return repository.fetch_active_sponsors()
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            delay = base_delay

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt == max_retries:
                        raise RetryError(
                            f"Failed after {max_retries + 1} attempts: {e}"
                        ) from e

                    current_delay = min(delay, max_delay)
                    if on_retry:
                        on_retry(attempt + 1, e, current_delay)
                    time.sleep(current_delay)
                    delay *= exponential_base

        return wrapper
    return decorator


def call_with_retry(
    func: Callable[[], Any],
    description: str,
    max_retries: int,
    base_delay: float,
    exceptions: Tuple[Type[Exception], ...],
    logger=None,
) -> Any:
    """Run func under exponential_backoff, logging each retry against description."""

    def log_retry(attempt, exc, delay):
        if logger is not None:
            logger.warning(
                f"Retrying {description}",
                attempt=attempt,
                delay=delay,
                error=str(exc),
            )

    retried = exponential_backoff(
        max_retries=max_retries,
        base_delay=base_delay,
        exceptions=exceptions,
        on_retry=log_retry,
    )(func)
    return retried()
