"""jobspine execution -- how a job body is run.

Architecture::

    retry.py      Fixed-delay retry loop (RetryContext) with injectable sleep
    timeout.py    Advisory deadline around execute() + cooperative checks
    launcher.py   Detached subprocess spawning for background dispatch
"""

from jobspine.execution.launcher import ProcessLauncher, SubprocessLauncher
from jobspine.execution.retry import FixedDelay, RetryContext, RetryStrategy
from jobspine.execution.timeout import (
    DeadlineContext,
    TimeoutExpired,
    advisory_deadline,
    check_deadline,
    get_current_deadline,
    remaining_time,
)

__all__ = [
    # Retry
    "RetryStrategy",
    "FixedDelay",
    "RetryContext",
    # Timeout
    "DeadlineContext",
    "TimeoutExpired",
    "advisory_deadline",
    "check_deadline",
    "get_current_deadline",
    "remaining_time",
    # Launch
    "ProcessLauncher",
    "SubprocessLauncher",
]
