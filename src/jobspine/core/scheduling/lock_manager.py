"""File-backed lock manager for jobs.

Manifesto:
    Two runs of the same non-overlapping job must never execute at the same
    time on one host. The lock is the presence of a file named after the
    job identity; creating it with ``O_CREAT | O_EXCL`` gives an atomic
    "create or fail" so two processes racing for it cannot both win.

    Known gap: there is no TTL, heartbeat or PID liveness check. A process
    that dies while holding the lock leaves the file behind and the job is
    skipped until an operator clears it (``jobspine unlock NAME`` or
    ``force_release``). The recorded PID is informational only.

Tags:
    jobspine, scheduling, locks, filesystem, concurrency

Doc-Types:
    api-reference
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

from jobspine.core.logging import get_logger

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]")


def safe_file_stem(job_id: str) -> str:
    """Map a job identity to a filesystem-safe name (``a.b.C`` -> ``a_b_C``)."""
    return _UNSAFE_CHARS.sub("_", job_id)


class FileLockManager:
    """Advisory per-job lock files.

    Example:
        >>> manager = FileLockManager("/tmp/jobspine/locks")
        >>> if manager.try_acquire("jobs.Heartbeat"):
        ...     try:
        ...         pass  # run the job
        ...     finally:
        ...         manager.release("jobs.Heartbeat")
        ... else:
        ...     print("Another run holds the lock")
    """

    def __init__(self, lock_dir: str | Path, *, logger: Any = None) -> None:
        self.lock_dir = Path(lock_dir)
        self.logger = logger or get_logger(__name__)

    def lock_path(self, job_id: str) -> Path:
        """Deterministic lock file path for a job identity."""
        return self.lock_dir / f"job_lock_{safe_file_stem(job_id)}.lock"

    def try_acquire(self, job_id: str) -> bool:
        """Create the lock file if it does not exist.

        Returns:
            True if this call created the lock, False if it was already held
        """
        path = self.lock_path(job_id)
        self.lock_dir.mkdir(parents=True, exist_ok=True)
        try:
            fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            self.logger.debug("lock_held", job_id=job_id, path=str(path))
            return False

        with os.fdopen(fd, "w") as handle:
            handle.write(str(os.getpid()))

        self.logger.debug("lock_acquired", job_id=job_id, path=str(path))
        return True

    def release(self, job_id: str) -> bool:
        """Remove the lock file. Idempotent.

        Returns:
            True if a lock file was removed, False if there was none
        """
        path = self.lock_path(job_id)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        self.logger.debug("lock_released", job_id=job_id, path=str(path))
        return True

    def is_locked(self, job_id: str) -> bool:
        """Check whether a lock file exists for the job."""
        return self.lock_path(job_id).exists()

    def get_lock_holder(self, job_id: str) -> int | None:
        """Return the PID recorded in the lock file, if any.

        For operators only; the runner never uses it to decide liveness.
        """
        try:
            content = self.lock_path(job_id).read_text().strip()
        except FileNotFoundError:
            return None
        return int(content) if content.isdigit() else None

    def list_active_locks(self) -> list[dict[str, Any]]:
        """List all lock files currently present."""
        if not self.lock_dir.exists():
            return []
        locks = []
        for path in sorted(self.lock_dir.glob("job_lock_*.lock")):
            content = path.read_text().strip()
            locks.append(
                {
                    "lock": path.stem.removeprefix("job_lock_"),
                    "pid": int(content) if content.isdigit() else None,
                    "path": str(path),
                }
            )
        return locks

    def force_release(self, job_id: str) -> bool:
        """Remove a lock left behind by a crashed run (use with caution!)."""
        released = self.release(job_id)
        if released:
            self.logger.warning("lock_force_released", job_id=job_id)
        return released


__all__ = ["FileLockManager", "safe_file_stem"]
