"""
Retry with capped exponential backoff for registration calls.

Architecture Context
--------------------
The HTTP client never retries on its own (apart from honoring one 429
Retry-After). State transitions that must survive a flaky service are
wrapped here instead:

    Crossref deposit     ─┐
    DataCite PUT         ─┼──►  @registration_retry  ──►  HttpClient.request
    InvenioRDM publish   ─┘

Backoff
-------
``delay = min(base_delay * exponential_base ** attempt, max_delay)`` plus up
to 25% jitter. With the registration policy that is roughly 1s, 2s, 4s. A
RateLimitedError waits at least its Retry-After value.

Design Decisions
----------------
1. **Only transient failures**: a NetworkFailureError is retried when its
   ``retryable`` flag is set (no status, 5xx or 429). A 4xx answer is a
   verdict about the record and is raised on the first attempt.
2. **Cancellation wins**: OperationCancelled is never retried.
3. **Exhaustion is explicit**: after the last attempt RetryError carries the
   final exception, so callers can record it in the response envelope.
"""

import random
import time
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Optional, Tuple, Type

from commonmeta.core.exceptions import (
    NetworkFailureError,
    OperationCancelled,
    RateLimitedError,
    RetryError,
)
from commonmeta.core.logging import get_logger

logger = get_logger(__name__)

OnRetry = Callable[[Exception, int], None]


def calculate_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    exponential_base: float,
    jitter: bool,
) -> float:
    """Seconds to wait after the 0-based ``attempt`` failed."""
    delay = min(base_delay * (exponential_base**attempt), max_delay)
    if jitter:
        delay += delay * 0.25 * random.random()
    return delay


def is_retryable(exception: Exception) -> bool:
    if isinstance(exception, OperationCancelled):
        return False
    if isinstance(exception, NetworkFailureError):
        return exception.retryable
    return True


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how long to retry one call."""

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    exponential_base: float = 2.0
    jitter: bool = True
    retry_on: Tuple[Type[Exception], ...] = (NetworkFailureError,)

    def delay_after(self, attempt: int, exception: Exception) -> float:
        delay = calculate_delay(
            attempt, self.base_delay, self.max_delay, self.exponential_base, self.jitter
        )
        if isinstance(exception, RateLimitedError) and exception.retry_after:
            delay = max(delay, min(exception.retry_after, self.max_delay))
        return delay

    def call(
        self,
        func: Callable[..., Any],
        args: tuple,
        kwargs: dict,
        on_retry: Optional[OnRetry] = None,
    ) -> Any:
        """Call ``func`` until it succeeds or the attempts are used up.

        Raises:
            The first non-retryable exception unchanged.
            RetryError: every attempt failed with a retryable exception
        """
        name = getattr(func, "__name__", "call")
        last_exception: Optional[Exception] = None
        for attempt in range(self.max_attempts):
            try:
                return func(*args, **kwargs)
            except self.retry_on as e:
                if not is_retryable(e):
                    raise
                last_exception = e
            if attempt == self.max_attempts - 1:
                break
            delay = self.delay_after(attempt, last_exception)
            logger.warning(
                f"Attempt {attempt + 1}/{self.max_attempts} failed, retrying in {delay:.2f}s",
                function=name,
                error=str(last_exception),
            )
            if on_retry:
                on_retry(last_exception, attempt + 1)
            time.sleep(delay)

        logger.error(
            f"All {self.max_attempts} attempts failed", function=name, error=str(last_exception)
        )
        raise RetryError(
            f"Failed after {self.max_attempts} attempts: {last_exception}",
            last_exception,
            self.max_attempts,
        )


def retry(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    retryable_exceptions: Optional[Tuple[Type[Exception], ...]] = None,
    on_retry: Optional[OnRetry] = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Decorator that retries transient failures with exponential backoff.

    Args:
        max_attempts: Attempts including the first call
        base_delay: Delay after the first failure, in seconds
        max_delay: Upper bound for a single delay
        exponential_base: Growth factor between attempts
        jitter: Add up to 25% random delay
        retryable_exceptions: Exception types considered at all
        on_retry: Callback(exception, attempt) before each new attempt

    Example:
        @retry(max_attempts=4)
        def deposit(batch):
            return client.request("POST", DEPOSIT_URL, files={"fname": batch})
    """
    policy = RetryPolicy(
        max_attempts=max_attempts,
        base_delay=base_delay,
        max_delay=max_delay,
        exponential_base=exponential_base,
        jitter=jitter,
        retry_on=retryable_exceptions or (NetworkFailureError,),
    )

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            return policy.call(func, args, kwargs, on_retry)

        return wrapper

    return decorator


# deposit, PUT and publish: 1s -> 2s -> 4s
registration_retry = retry(max_attempts=4, base_delay=1.0, max_delay=30.0)
