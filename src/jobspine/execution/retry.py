"""Bounded retry with a fixed delay.

A job gets ``retry_attempts`` tries in total (the first call counts), with
``retry_delay_seconds`` of blocking sleep between tries. The last error is
re-raised unchanged once the attempts are used up.

Example:
    >>> ctx = RetryContext(FixedDelay(max_attempts=3, delay=60))
    >>> ctx.run(job.execute)  # at most 3 calls, 60s apart
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, TypeVar

T = TypeVar("T")


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class RetryStrategy(ABC):
    """Abstract base for retry strategies."""

    @abstractmethod
    def next_delay(self, attempt: int) -> float:
        """Delay in seconds before the attempt after ``attempt`` (1-based)."""
        ...

    @abstractmethod
    def should_retry(self, attempt: int, error: Exception | None = None) -> bool:
        """Whether another attempt may follow attempt number ``attempt``."""
        ...


@dataclass
class FixedDelay(RetryStrategy):
    """Constant delay between attempts, bounded total attempts.

    Attributes:
        max_attempts: Total number of attempts, including the first (>= 1)
        delay: Seconds to wait between attempts (>= 0)
    """

    max_attempts: int = 3
    delay: float = 60.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.delay < 0:
            raise ValueError(f"delay must be >= 0, got {self.delay}")

    def next_delay(self, attempt: int) -> float:
        return self.delay

    def should_retry(self, attempt: int, error: Exception | None = None) -> bool:
        return attempt < self.max_attempts


@dataclass
class RetryContext:
    """Runs a callable under a retry strategy and records each failure.

    ``sleep`` is injectable so that callers (and tests) control how the
    delay between attempts is spent.

    Example:
        >>> ctx = RetryContext(FixedDelay(max_attempts=3, delay=0))
        >>> result = ctx.run(lambda: call_api())
        >>> ctx.attempts
        1
    """

    strategy: RetryStrategy
    on_retry: Callable[[int, Exception, float], None] | None = None
    sleep: Callable[[float], None] = time.sleep
    attempt: int = field(default=0, init=False)
    last_error: Exception | None = field(default=None, init=False)
    started_at: datetime = field(default_factory=utcnow, init=False)
    errors: list[tuple[int, Exception, datetime]] = field(default_factory=list, init=False)

    @property
    def attempts(self) -> int:
        """Number of attempts made so far."""
        return self.attempt

    @property
    def elapsed_seconds(self) -> float:
        """Total elapsed time since the context was created."""
        return (utcnow() - self.started_at).total_seconds()

    def run(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Call ``func`` until it succeeds or the strategy gives up.

        Raises:
            The last exception raised by ``func`` once retries are exhausted
        """
        while True:
            self.attempt += 1
            try:
                return func(*args, **kwargs)
            except Exception as e:
                self.last_error = e
                self.errors.append((self.attempt, e, utcnow()))

                if not self.strategy.should_retry(self.attempt, e):
                    raise

                delay = self.strategy.next_delay(self.attempt)

                if self.on_retry:
                    self.on_retry(self.attempt, e, delay)

                self.sleep(delay)


__all__ = [
    "RetryStrategy",
    "FixedDelay",
    "RetryContext",
]
