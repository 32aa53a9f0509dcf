"""
Bounded exponential backoff for calls to external services.

``with_retry`` is a plain higher-order function: every call gets its own
attempt counter, and everything it needs comes from the RetryPolicy passed
in. Failures are never swallowed; the last error always reaches the caller.

Formula: min(max_delay, base_delay * 2^attempt) * (1 + random(0, jitter_factor))
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

import httpx

from signal_pipeline.config.settings import Settings, get_settings
from signal_pipeline.extraction.errors import ExternalServiceError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})
_RATE_LIMIT_MARKERS = ("rate limit", "too many requests")


def is_retryable_error(exc: BaseException) -> bool:
    """
    Classify an exception as transient.

    Retryable:
    - ExternalServiceError with a 429/5xx status or flagged retryable
    - Any error whose message mentions a rate limit
    - httpx timeouts and transport failures

    Everything else (validation errors, other 4xx) is permanent.
    """
    if isinstance(exc, ExternalServiceError):
        if exc.retryable or exc.status_code in RETRYABLE_STATUS_CODES:
            return True

    if isinstance(exc, (httpx.TimeoutException, httpx.TransportError)):
        return True

    message = str(exc).lower()
    return any(marker in message for marker in _RATE_LIMIT_MARKERS)


@dataclass(frozen=True)
class RetryPolicy:
    """Parameters for one retried call."""

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    jitter_factor: float = 0.0
    is_retryable: Callable[[BaseException], bool] = is_retryable_error

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "RetryPolicy":
        settings = settings or get_settings()
        return cls(
            max_attempts=settings.max_retry_attempts,
            base_delay=settings.retry_base_delay,
            max_delay=settings.max_backoff_seconds,
        )

    def delay_for(self, attempt: int) -> float:
        """
        Backoff before retrying after the given attempt.

        Args:
            attempt: Zero-indexed attempt that just failed

        Returns:
            Delay in seconds
        """
        delay = min(self.base_delay * (2**attempt), self.max_delay)
        if self.jitter_factor:
            delay += delay * self.jitter_factor * random.random()
        return delay


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    operation: str = "external call",
) -> T:
    """
    Await ``fn()`` until it succeeds, fails permanently or runs out of attempts.

    Args:
        fn: Zero-argument coroutine factory (use functools.partial for arguments)
        policy: Retry parameters; defaults to RetryPolicy()
        operation: Label used in log messages

    Returns:
        Whatever ``fn`` returns

    Raises:
        The last exception raised by ``fn``
    """
    policy = policy or RetryPolicy()
    attempts = max(1, policy.max_attempts)

    for attempt in range(attempts):
        try:
            return await fn()
        except Exception as e:
            if not policy.is_retryable(e) or attempt + 1 >= attempts:
                raise

            delay = policy.delay_for(attempt)
            logger.warning(
                f"Retryable error in {operation} ({type(e).__name__}: {e}), "
                f"attempt {attempt + 1}/{attempts}, backing off {delay:.2f}s"
            )
            await asyncio.sleep(delay)

    # range(attempts) always returns or raises
    raise RuntimeError("unreachable")
