"""Advisory execution deadlines.

Manifesto:
    A job's ``timeout_seconds`` is a budget, not a kill switch. Python cannot
    safely interrupt an arbitrary call from outside, so the framework:

    - **Tracks** the deadline for the duration of ``execute()``
    - **Reports** an overrun once the call returns
    - **Lets jobs cooperate:** long loops can call ``check_deadline()``
      (raises ``TimeoutExpired``) or read ``remaining_time()``

    A hard stop needs process isolation; run the job detached and let the
    operating system terminate it.

Examples:
    >>> with advisory_deadline(30, operation="Heartbeat") as ctx:
    ...     for item in items:
    ...         check_deadline()      # raises once 30s have passed
    ...         process(item)

Tags:
    timeout, deadline, execution, jobspine

Doc-Types:
    api-reference
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field


class TimeoutExpired(TimeoutError):
    """Raised by ``check_deadline`` when the current deadline has passed.

    Attributes:
        timeout: The timeout value that was exceeded
        elapsed: How long the operation had been running
        operation: Name/description of the operation
    """

    def __init__(
        self,
        timeout: float,
        elapsed: float | None = None,
        operation: str = "operation",
    ):
        self.timeout = timeout
        self.elapsed = elapsed
        self.operation = operation

        msg = f"Operation '{operation}' timed out after {timeout}s"
        if elapsed is not None:
            msg += f" (ran for {elapsed:.2f}s)"
        super().__init__(msg)


@dataclass
class DeadlineContext:
    """Deadline state for one ``advisory_deadline`` block.

    Attributes:
        deadline: Absolute deadline (monotonic clock)
        timeout_seconds: Original timeout value in seconds
        operation: Name/description of the operation
        start_time: When the block started
    """

    deadline: float
    timeout_seconds: float
    operation: str = "operation"
    start_time: float = field(default_factory=time.monotonic)

    def remaining(self) -> float:
        """Seconds left; negative once expired."""
        return self.deadline - time.monotonic()

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.start_time

    def is_expired(self) -> bool:
        return time.monotonic() >= self.deadline


# Thread-local storage for nested deadlines
_deadline_stack: threading.local = threading.local()


def _get_deadline_stack() -> list[DeadlineContext]:
    if not hasattr(_deadline_stack, "stack"):
        _deadline_stack.stack = []
    return _deadline_stack.stack


def get_current_deadline() -> DeadlineContext | None:
    """Innermost active deadline of this thread, if any."""
    stack = _get_deadline_stack()
    return stack[-1] if stack else None


def remaining_time() -> float | None:
    """Seconds left on the current deadline, or None outside a deadline."""
    ctx = get_current_deadline()
    return None if ctx is None else ctx.remaining()


def check_deadline() -> None:
    """Raise ``TimeoutExpired`` if the current deadline has passed.

    Does nothing outside a deadline block.
    """
    ctx = get_current_deadline()
    if ctx is not None and ctx.is_expired():
        raise TimeoutExpired(
            timeout=ctx.timeout_seconds,
            elapsed=ctx.elapsed,
            operation=ctx.operation,
        )


@contextmanager
def advisory_deadline(
    seconds: float,
    operation: str = "operation",
    on_overrun: Callable[[DeadlineContext], None] | None = None,
) -> Iterator[DeadlineContext | None]:
    """Track a time budget around a block without enforcing it.

    Args:
        seconds: Budget in seconds; 0 disables tracking
        operation: Name used in messages
        on_overrun: Called with the context when the block ends (normally or
            by exception) after the deadline has passed

    Yields:
        The DeadlineContext, or None when ``seconds`` is 0
    """
    if seconds < 0:
        raise ValueError(f"Timeout must be non-negative, got {seconds}")
    if seconds == 0:
        yield None
        return

    now = time.monotonic()
    ctx = DeadlineContext(
        deadline=now + seconds,
        timeout_seconds=seconds,
        operation=operation,
        start_time=now,
    )

    stack = _get_deadline_stack()
    stack.append(ctx)
    try:
        yield ctx
    finally:
        stack.pop()
        if on_overrun is not None and ctx.is_expired():
            on_overrun(ctx)


__all__ = [
    "TimeoutExpired",
    "DeadlineContext",
    "advisory_deadline",
    "check_deadline",
    "get_current_deadline",
    "remaining_time",
]
