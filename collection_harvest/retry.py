"""
Retry Policy - Bounded exponential backoff for async operations.

Attempt 1 runs immediately. Attempt k (k >= 2) is preceded by a delay of
``initial_delay * multiplier ** (k - 2)``, capped at ``max_delay``.
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, TypeVar

from collection_harvest.exceptions import NonRetryableHttpError, RetryExhausted


logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """
    Retry an awaitable factory with exponential backoff.

    Every exception is retryable except NonRetryableHttpError, which is
    re-raised on the spot.
    """

    max_attempts: int = 5
    """Total attempts including the first one."""

    initial_delay_seconds: float = 0.25
    """Delay before the second attempt."""

    backoff_multiplier: float = 2.0
    """Growth factor applied per attempt."""

    max_delay_seconds: float = 30.0
    """Upper bound for a single delay."""

    jitter: float = 0.0
    """Fraction of the delay added at random (0 disables)."""

    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, repr=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.initial_delay_seconds < 0:
            raise ValueError("initial_delay_seconds must not be negative")
        if self.backoff_multiplier < 1:
            raise ValueError("backoff_multiplier must be >= 1")

    def delay_for(self, attempt: int) -> float:
        """Delay to wait before ``attempt`` (1-based). Zero for the first."""
        if attempt <= 1:
            return 0.0
        delay = self.initial_delay_seconds * self.backoff_multiplier ** (attempt - 2)
        delay = min(delay, self.max_delay_seconds)
        if self.jitter:
            delay += delay * self.jitter * random.random()
        return delay

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        description: str = "operation",
    ) -> T:
        """
        Await ``operation()`` until it succeeds or attempts run out.

        A RateLimitError counts as a failed attempt like any other transient
        error. Any Retry-After wait the client already slept comes on top of
        the backoff delay.

        Raises:
            NonRetryableHttpError: Immediately, without further attempts
            RetryExhausted: After max_attempts failures
        """
        last_error: Optional[BaseException] = None

        for attempt in range(1, self.max_attempts + 1):
            if attempt > 1:
                wait_time = self.delay_for(attempt)
                logger.info(
                    f"[retry] {description}: attempt {attempt}/{self.max_attempts} "
                    f"in {wait_time:.2f}s after: {last_error}"
                )
                await self.sleep(wait_time)

            try:
                return await operation()
            except NonRetryableHttpError:
                raise
            except Exception as e:
                last_error = e

        raise RetryExhausted(
            message=f"{description} failed after {self.max_attempts} attempts",
            attempts=self.max_attempts,
            last_error=last_error,
        ) from last_error


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 5,
    initial_delay_seconds: float = 0.25,
) -> T:
    """Convenience wrapper using a default-shaped RetryPolicy."""
    policy = RetryPolicy(
        max_attempts=max_attempts,
        initial_delay_seconds=initial_delay_seconds,
    )
    return await policy.run(operation)
