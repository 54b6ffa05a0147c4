"""Retry logic with exponential backoff and jitter.

This module provides:
- with_retries: run a callable up to max_retries + 1 times
- RetryPolicy: a reusable (max_retries, base_delay, jitter) triple
- Named policies for each kind of remote call
"""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Default retry configuration
DEFAULT_MAX_RETRIES = 2
DEFAULT_BASE_DELAY = 0.4  # seconds
DEFAULT_JITTER = 0.2  # seconds, upper bound of the random extra delay


def backoff_delay(attempt: int, base_delay: float, jitter: float = DEFAULT_JITTER) -> float:
    """Delay before retrying after the given zero-based attempt failed."""
    return base_delay * (2**attempt) + random.uniform(0, jitter)


def with_retries(
    func: Callable[[], T],
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    jitter: float = DEFAULT_JITTER,
    retryable_exceptions: tuple[type[Exception], ...] = (Exception,),
    description: str = "operation",
) -> T:
    """Execute a function with exponential backoff retry.

    The function is called at most max_retries + 1 times. After a failed
    attempt ``n`` (zero-based) the caller sleeps
    ``base_delay * 2**n + uniform(0, jitter)`` seconds.

    Args:
        func: Function to execute.
        max_retries: Maximum number of retry attempts.
        base_delay: Delay before the first retry, in seconds.
        jitter: Upper bound of the random delay added to each backoff.
        retryable_exceptions: Tuple of exception types to retry on.
        description: Name used in log messages.

    Returns:
        Result of the function.

    Raises:
        The last exception if all attempts fail.
    """
    if max_retries < 0:
        raise ValueError(f"max_retries must be >= 0, got {max_retries}")

    for attempt in range(max_retries + 1):
        try:
            return func()
        except retryable_exceptions as e:
            if attempt == max_retries:
                if max_retries:
                    logger.error(f"{description}: all {max_retries + 1} attempts failed: {e}")
                raise

            delay = backoff_delay(attempt, base_delay, jitter)
            logger.warning(
                f"{description}: attempt {attempt + 1}/{max_retries + 1} failed: {e}. "
                f"Retrying in {delay:.2f}s..."
            )
            time.sleep(delay)

    # Should not reach here, but satisfy type checker
    raise RuntimeError("Unexpected retry loop exit")


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry settings for one kind of remote call."""

    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay: float = DEFAULT_BASE_DELAY
    jitter: float = DEFAULT_JITTER

    def call(self, func: Callable[[], T], description: str = "operation") -> T:
        """Run func under this policy."""
        return with_retries(
            func,
            max_retries=self.max_retries,
            base_delay=self.base_delay,
            jitter=self.jitter,
            description=description,
        )


NO_RETRY = RetryPolicy(max_retries=0, base_delay=0.0, jitter=0.0)
LIST_RETRY = RetryPolicy(max_retries=2, base_delay=0.4)
STAT_RETRY = RetryPolicy(max_retries=2, base_delay=0.3)
UPLOAD_RETRY = RetryPolicy(max_retries=2, base_delay=0.5)
REGION_RETRY = RetryPolicy(max_retries=2, base_delay=0.4)
