"""Scheduling primitives: cron matching and per-job locks.

Manifesto:
    There is no scheduler loop. Something outside the process (cron,
    systemd timers, a CI trigger) calls the runner, and each job decides on
    its own whether it is due and whether it may take its lock.

Quick Start::

    from jobspine.core.scheduling import FileLockManager, is_due

    if is_due("*/5 * * * *", datetime.now()):
        locks = FileLockManager(settings.lock_dir)
        if locks.try_acquire(job_id):
            try:
                ...
            finally:
                locks.release(job_id)

Tags:
    jobspine, scheduling, cron, locks
"""

from jobspine.core.scheduling.cron import (
    FIELD_NAMES,
    field_values,
    is_due,
    matches_field,
    split_schedule,
    validate_schedule,
)
from jobspine.core.scheduling.lock_manager import FileLockManager, safe_file_stem

__all__ = [
    # Cron
    "FIELD_NAMES",
    "field_values",
    "is_due",
    "matches_field",
    "split_schedule",
    "validate_schedule",
    # Locks
    "FileLockManager",
    "safe_file_stem",
]
