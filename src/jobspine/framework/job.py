"""Base job: configuration, run policy and the run lifecycle.

Manifesto:
    A job author writes one method, ``execute()``, and declares a policy.
    Everything around the call (is it due, is another run still going, how
    many tries, who hears about a failure) is the same for every job, so
    it lives here once.

Architecture:

    .. code-block:: text

        job.run(force=False)
          │
          ├─ disabled?            ──► SKIPPED_DISABLED
          ├─ not force, not due?  ──► SKIPPED_NOT_DUE
          ├─ lock held?           ──► SKIPPED_LOCKED   (allow_overlapping=False)
          │
          ├─ try:
          │    RetryContext(FixedDelay(retry_attempts, retry_delay_seconds))
          │      └─ advisory_deadline(timeout_seconds)
          │           └─ execute()
          │  except: log + ERROR alert (notify_on_error) ──► re-raise
          │  finally: release lock
          │
          └─ log + INFO alert (notify_on_success) ──► SUCCEEDED

Examples:
    >>> class Heartbeat(BaseJob):
    ...     config = JobConfig(schedule="*/5 * * * *", retry_attempts=2)
    ...
    ...     def execute(self) -> None:
    ...         self.logger.info("beat")
    ...         self.set_state("last_beat", time.time())
    >>> Heartbeat()(force=True)
    <RunOutcome.SUCCEEDED: 'succeeded'>

Guardrails:
    - ``timeout_seconds`` is advisory: overruns are logged after the fact.
      Long loops can call ``check_deadline()`` to stop early.
    - ``force=True`` skips the schedule check only; the lock still applies.
    - A quiet job (``quiet=True`` / ``disable_logging()``) logs nothing and
      sends no alerts, but its errors still propagate.

Tags:
    jobspine, framework, job, lifecycle, retry, lock

Doc-Types:
    api-reference
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar

from jobspine.core.errors import InvalidConfigError
from jobspine.core.logging import LogContext, bind_context, get_logger, unbind_context
from jobspine.core.scheduling import FileLockManager, is_due
from jobspine.core.settings import JobSpineSettings, get_settings
from jobspine.core.state import Callback, JobStateStore
from jobspine.execution.retry import FixedDelay, RetryContext
from jobspine.execution.timeout import DeadlineContext, advisory_deadline
from jobspine.framework.alerts import AlertDispatcher, AlertSeverity, build_dispatcher


def _check_int(key: str, value: Any, minimum: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidConfigError(key, value, f"{key} must be an integer, got {value!r}")
    if value < minimum:
        raise InvalidConfigError(key, value, f"{key} must be >= {minimum}, got {value}")


def _check_bool(key: str, value: Any) -> None:
    if not isinstance(value, bool):
        raise InvalidConfigError(key, value, f"{key} must be a bool, got {value!r}")


@dataclass(frozen=True)
class JobConfig:
    """Schedule and run policy of a job.

    Attributes:
        schedule: Five-field cron expression
        timeout_seconds: Advisory execution budget per attempt, 0 = none
        allow_overlapping: Skip the lock file entirely
        retry_attempts: Total attempts including the first (>= 1)
        retry_delay_seconds: Blocking delay between attempts
        enabled: Disabled jobs are skipped before the schedule check
        notify_on_error: Send an ERROR alert on terminal failure
        notify_on_success: Send an INFO alert on success
    """

    schedule: str = "* * * * *"
    timeout_seconds: int = 300
    allow_overlapping: bool = False
    retry_attempts: int = 3
    retry_delay_seconds: int = 60
    enabled: bool = True
    notify_on_error: bool = True
    notify_on_success: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.schedule, str) or not self.schedule.strip():
            raise InvalidConfigError("schedule", self.schedule, "schedule must be a non-empty string")
        _check_int("timeout_seconds", self.timeout_seconds, 0)
        _check_int("retry_attempts", self.retry_attempts, 1)
        _check_int("retry_delay_seconds", self.retry_delay_seconds, 0)
        for key in ("allow_overlapping", "enabled", "notify_on_error", "notify_on_success"):
            _check_bool(key, getattr(self, key))


class RunOutcome(str, Enum):
    """How a ``run()`` that did not raise ended."""

    SUCCEEDED = "succeeded"
    SKIPPED_DISABLED = "skipped_disabled"
    SKIPPED_NOT_DUE = "skipped_not_due"
    SKIPPED_LOCKED = "skipped_locked"

    @property
    def skipped(self) -> bool:
        return self is not RunOutcome.SUCCEEDED


class BaseJob(ABC):
    """Base class for all jobs.

    Subclasses implement ``execute()`` and may override ``config`` (class
    attribute) or ``configure()`` (hook). Collaborators are injectable for
    tests; by default they are built from ``JobSpineSettings``.
    """

    config: ClassVar[JobConfig] = JobConfig()
    job_id: ClassVar[str | None] = None

    def __init__(
        self,
        *,
        settings: JobSpineSettings | None = None,
        lock_manager: FileLockManager | None = None,
        state: JobStateStore | None = None,
        alerts: AlertDispatcher | None = None,
        logger: Any = None,
        clock: Callable[[], datetime] | None = None,
        sleep: Callable[[float], None] | None = None,
        quiet: bool = False,
    ) -> None:
        self.settings = settings or get_settings()
        self.name = type(self).__name__
        self.job_identity = type(self).identity()

        config = self.configure(type(self).config)
        if not isinstance(config, JobConfig):
            raise InvalidConfigError("config", config, f"{self.name}.configure() must return a JobConfig")
        self.config = config

        self.logger = logger or get_logger(f"jobspine.jobs.{self.name}").bind(job=self.name)
        self.lock_manager = lock_manager or FileLockManager(self.settings.lock_dir)
        self.state = state or JobStateStore(self.job_identity, self.settings.state_dir)
        self.alerts = alerts if alerts is not None else build_dispatcher(self.settings)
        self._clock = clock or datetime.now
        self._sleep = sleep or time.sleep
        self._logging_enabled = not quiet

    @classmethod
    def identity(cls) -> str:
        """Stable identity used to name the lock and state files."""
        return cls.job_id or f"{cls.__module__}.{cls.__qualname__}"

    def configure(self, config: JobConfig) -> JobConfig:
        """Hook to adjust the class-level config per instance."""
        return config

    @abstractmethod
    def execute(self) -> None:
        """The job body. Raise to signal failure."""
        ...

    def disable_logging(self) -> None:
        """Silence lifecycle logs and alerts for this instance."""
        self._logging_enabled = False

    @property
    def logging_enabled(self) -> bool:
        return self._logging_enabled

    def _log(self, level: str, event: str, **kwargs: Any) -> None:
        if self._logging_enabled:
            getattr(self.logger, level)(event, **kwargs)

    def _notify(self, severity: AlertSeverity, title: str, message: str, **kwargs: Any) -> None:
        if self._logging_enabled:
            self.alerts.notify(severity, title, message, source=self.name, **kwargs)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def should_run(self, force: bool = False) -> bool:
        """Enabled and (forced or due now)."""
        if not self.config.enabled:
            return False
        if force:
            return True
        return is_due(self.config.schedule, self._clock())

    def __call__(self, force: bool = False) -> RunOutcome:
        return self.run(force=force)

    def run(self, force: bool = False) -> RunOutcome:
        """Run the job once under its policy.

        Raises:
            Whatever ``execute()`` raised on the last attempt
        """
        if not self.config.enabled:
            self._log("info", "job_skipped", reason="disabled")
            return RunOutcome.SKIPPED_DISABLED

        if not self.should_run(force):
            self._log("info", "job_skipped", reason="not_due", schedule=self.config.schedule)
            return RunOutcome.SKIPPED_NOT_DUE

        use_lock = not self.config.allow_overlapping
        if use_lock and not self.lock_manager.try_acquire(self.job_identity):
            self._log(
                "warning",
                "job_already_running",
                lock=str(self.lock_manager.lock_path(self.job_identity)),
                holder_pid=self.lock_manager.get_lock_holder(self.job_identity),
            )
            return RunOutcome.SKIPPED_LOCKED

        retry = RetryContext(
            FixedDelay(self.config.retry_attempts, self.config.retry_delay_seconds),
            on_retry=self._on_retry,
            sleep=self._sleep,
        )
        with LogContext(job=self.name):
            try:
                retry.run(self._attempt, retry)
            except Exception as exc:
                self._log(
                    "error",
                    "job_failed",
                    attempts=retry.attempts,
                    error=str(exc),
                    error_type=type(exc).__name__,
                    exc_info=True,
                )
                if self.config.notify_on_error:
                    self._notify(
                        AlertSeverity.ERROR,
                        f"Job {self.name} failed",
                        f"{type(exc).__name__}: {exc}",
                        error=exc,
                        metadata={"attempts": retry.attempts},
                    )
                raise
            finally:
                if use_lock:
                    self.lock_manager.release(self.job_identity)
                unbind_context("attempt")

        self._log(
            "info",
            "job_succeeded",
            attempts=retry.attempts,
            duration_seconds=round(retry.elapsed_seconds, 3),
        )
        if self.config.notify_on_success:
            self._notify(
                AlertSeverity.INFO,
                f"Job {self.name} succeeded",
                f"Completed after {retry.attempts} attempt(s)",
                metadata={"attempts": retry.attempts},
            )
        return RunOutcome.SUCCEEDED

    def _attempt(self, retry: RetryContext) -> None:
        bind_context(attempt=retry.attempt)
        self._log("debug", "job_attempt_started")
        with advisory_deadline(
            self.config.timeout_seconds,
            operation=self.name,
            on_overrun=self._on_overrun,
        ):
            self.execute()

    def _on_retry(self, attempt: int, error: Exception, delay: float) -> None:
        self._log(
            "warning",
            "job_retry",
            attempt=attempt,
            max_attempts=self.config.retry_attempts,
            delay_seconds=delay,
            error=str(error),
        )

    def _on_overrun(self, ctx: DeadlineContext) -> None:
        self._log(
            "warning",
            "job_timeout_exceeded",
            timeout_seconds=ctx.timeout_seconds,
            elapsed_seconds=round(ctx.elapsed, 3),
        )

    # ------------------------------------------------------------------
    # State helpers
    # ------------------------------------------------------------------

    def get_state(self, key: str, default: Any = None) -> Any:
        return self.state.get(key, default)

    def set_state(self, key: str, value: Any, on_changed: Callback | None = None) -> bool:
        return self.state.set(key, value, on_changed)

    def check_state_update(self, key: str, candidate: Any, predicate: Callback) -> bool:
        return self.state.check_and_update(key, candidate, predicate)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(identity={self.job_identity!r}, schedule={self.config.schedule!r})"


__all__ = ["BaseJob", "JobConfig", "RunOutcome"]
