"""
Retry Policies

Retry logic with exponential backoff for transient network failures
during model downloads. Recognition itself is never retried.
"""

from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Set, Type, TypeVar

from loguru import logger

T = TypeVar('T')


@dataclass
class RetryAttempt:
    """Information about a failed attempt."""

    attempt_number: int
    error: Exception
    elapsed_time: float
    will_retry: bool
    next_delay: float


@dataclass
class RetryPolicy:
    """
    Configurable retry policy.

    Calculates delay as: base_delay * (multiplier ^ attempt) + jitter,
    capped at max_delay.
    """

    max_retries: int = 3
    max_time: Optional[float] = None  # Max total time for all attempts

    base_delay: float = 1.0
    max_delay: float = 30.0
    multiplier: float = 2.0
    jitter: float = 0.1  # Random jitter factor (0-1)

    retry_exceptions: Set[Type[Exception]] = field(
        default_factory=lambda: {ConnectionError, TimeoutError}
    )

    on_retry: Optional[Callable[[RetryAttempt], None]] = None

    # Injected so tests do not actually wait
    sleep: Callable[[float], None] = time.sleep

    def get_delay(self, attempt: int) -> float:
        """
        Calculate delay for an attempt.

        Args:
            attempt: Attempt number (0-indexed)

        Returns:
            Delay in seconds
        """
        delay = min(self.base_delay * (self.multiplier ** attempt), self.max_delay)

        if self.jitter > 0:
            jitter_range = delay * self.jitter
            delay += random.uniform(-jitter_range, jitter_range)

        return max(0.0, delay)

    def should_retry_exception(self, exc: Exception) -> bool:
        return isinstance(exc, tuple(self.retry_exceptions))

    @classmethod
    def no_retry(cls) -> 'RetryPolicy':
        """Create a policy with no retries."""
        return cls(max_retries=0)


def execute_with_retry(
    func: Callable[..., T],
    policy: RetryPolicy,
    *args,
    **kwargs,
) -> T:
    """
    Execute a function with retry logic.

    Args:
        func: Function to execute
        policy: Retry policy
        *args: Function arguments
        **kwargs: Function keyword arguments

    Returns:
        Function result

    Raises:
        The last exception if every attempt fails, or the first exception
        the policy does not consider retryable.
    """
    start_time = time.monotonic()

    for attempt in range(policy.max_retries + 1):
        try:
            return func(*args, **kwargs)
        except Exception as e:
            elapsed = time.monotonic() - start_time

            should_retry = (
                attempt < policy.max_retries and
                policy.should_retry_exception(e) and
                (policy.max_time is None or elapsed < policy.max_time)
            )
            delay = policy.get_delay(attempt) if should_retry else 0.0

            if policy.on_retry:
                policy.on_retry(RetryAttempt(
                    attempt_number=attempt + 1,
                    error=e,
                    elapsed_time=elapsed,
                    will_retry=should_retry,
                    next_delay=delay,
                ))

            if not should_retry:
                raise

            logger.warning(
                f"Attempt {attempt + 1} failed: {e}. Retrying in {delay:.2f}s..."
            )
            policy.sleep(delay)

    raise RuntimeError("Retry logic error: loop exited without result")
