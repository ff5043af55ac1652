"""Job runner: batch runs, single-job invocation and detached dispatch.

Manifesto:
    The runner is what an external trigger (a crontab line) calls. It walks
    the registry in order and either runs each job on the calling thread or
    hands it to a detached OS process. One job failing never stops the
    batch; every job gets a ``JobRunResult`` in the ``BatchReport``.

Architecture:

    .. code-block:: text

        * * * * *  jobspine run --background
                        │
                        ▼
        JobRunner.run(background=True)
          for descriptor in registry.runnable():
            dispatch_detached(name)
              └─ launcher.spawn_detached(
                   [python, -m, jobspine, invoke, NAME, --sync, --quiet,
                    --jobs-dir, DIR],
                   log_dir/job-NAME-YYYY-mm-dd-HH-MM-SS.log)
                        │
                        ▼  (child process)
        invoke(NAME, quiet=True)
          └─ job.run()  ──► on failure: job_error log with traceback,
                              runner alert, re-raise (exit 1)

The child's stdout and stderr go to the log artifact, so the job_error
line is how a detached failure keeps its traceback even under --quiet.

Tags:
    jobspine, framework, runner, batch, background

Doc-Types:
    api-reference
"""

from __future__ import annotations

import sys
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from jobspine.core.errors import JobError, LaunchError, categorize_error
from jobspine.core.logging import get_logger
from jobspine.core.settings import JobSpineSettings, get_settings
from jobspine.execution.launcher import ProcessLauncher, SubprocessLauncher
from jobspine.framework.alerts import AlertDispatcher, AlertSeverity, build_dispatcher
from jobspine.framework.job import BaseJob, RunOutcome
from jobspine.framework.registry import JobDescriptor, JobRegistry, job_registry

RUNNER_SOURCE = "runner"


class JobRunStatus(str, Enum):
    """Per-job status in a batch."""

    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"
    DISPATCHED = "dispatched"


@dataclass
class JobRunResult:
    """What happened to one job in a batch."""

    name: str
    status: JobRunStatus
    outcome: RunOutcome | None = None
    error: BaseException | None = None
    pid: int | None = None
    log_path: Path | None = None
    duration_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "name": self.name,
            "status": self.status.value,
            "duration_seconds": round(self.duration_seconds, 3),
        }
        if self.outcome is not None:
            result["outcome"] = self.outcome.value
        if self.error is not None:
            result["error"] = f"{type(self.error).__name__}: {self.error}"
        if self.pid is not None:
            result["pid"] = self.pid
        if self.log_path is not None:
            result["log_path"] = str(self.log_path)
        return result


@dataclass
class BatchReport:
    """Results of one ``JobRunner.run()`` call, in processing order."""

    results: list[JobRunResult] = field(default_factory=list)

    def _with_status(self, status: JobRunStatus) -> list[JobRunResult]:
        return [r for r in self.results if r.status is status]

    @property
    def succeeded(self) -> list[JobRunResult]:
        return self._with_status(JobRunStatus.SUCCEEDED)

    @property
    def skipped(self) -> list[JobRunResult]:
        return self._with_status(JobRunStatus.SKIPPED)

    @property
    def failed(self) -> list[JobRunResult]:
        return self._with_status(JobRunStatus.FAILED)

    @property
    def dispatched(self) -> list[JobRunResult]:
        return self._with_status(JobRunStatus.DISPATCHED)

    @property
    def ok(self) -> bool:
        """True when no job failed."""
        return not self.failed

    def __len__(self) -> int:
        return len(self.results)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "total": len(self.results),
            "succeeded": len(self.succeeded),
            "skipped": len(self.skipped),
            "failed": len(self.failed),
            "dispatched": len(self.dispatched),
            "results": [r.to_dict() for r in self.results],
        }


@dataclass(frozen=True)
class DetachedRun:
    """A job handed to a detached process. The runner keeps no handle on it."""

    name: str
    pid: int
    log_path: Path
    command: tuple[str, ...]


class JobRunner:
    """
    Runs the jobs of a registry.

    ``job_options`` are passed to every job constructor (e.g. ``sleep`` or
    ``clock`` in tests).
    """

    def __init__(
        self,
        registry: JobRegistry | None = None,
        settings: JobSpineSettings | None = None,
        launcher: ProcessLauncher | None = None,
        alerts: AlertDispatcher | None = None,
        *,
        logger: Any = None,
        clock: Callable[[], datetime] | None = None,
        job_options: Mapping[str, Any] | None = None,
    ) -> None:
        self.registry = registry if registry is not None else job_registry
        self.settings = settings or get_settings()
        self.launcher = launcher or SubprocessLauncher()
        self.alerts = alerts if alerts is not None else build_dispatcher(self.settings)
        self.logger = logger or get_logger(__name__)
        self._clock = clock or datetime.now
        self._job_options = dict(job_options or {})

    # ------------------------------------------------------------------
    # Job construction
    # ------------------------------------------------------------------

    def create_job(self, name: str, *, quiet: bool = False) -> BaseJob:
        """Instantiate a registered, enabled job.

        Raises:
            JobNotFoundError: If ``name`` is not registered
            JobError: If the job's definition file is disabled
        """
        descriptor = self.registry.get(name)
        if not descriptor.enabled or descriptor.job_cls is None:
            raise JobError(f"Job '{name}' is disabled", context={"job": name})
        options = {"settings": self.settings, "alerts": self.alerts, **self._job_options}
        return descriptor.job_cls(quiet=quiet, **options)

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    def run(self, background: bool = False) -> BatchReport:
        """Run (or dispatch) every runnable job once, in registry order."""
        report = BatchReport()
        descriptors = self.registry.runnable()
        if not descriptors:
            self.logger.warning("no_jobs_found")
            return report

        for descriptor in descriptors:
            self.logger.info("job_processing", job=descriptor.name, background=background)
            if background:
                report.results.append(self._dispatch_result(descriptor))
            else:
                report.results.append(self.run_job(descriptor.name))

        self.logger.info(
            "batch_completed",
            total=len(report),
            succeeded=len(report.succeeded),
            skipped=len(report.skipped),
            failed=len(report.failed),
            dispatched=len(report.dispatched),
        )
        return report

    def run_job(self, name: str, *, force: bool = False) -> JobRunResult:
        """Run one job synchronously, capturing any failure in the result."""
        started = time.monotonic()
        try:
            outcome = self.create_job(name).run(force=force)
        except Exception as exc:
            self.on_exception(exc, name)
            return JobRunResult(
                name=name,
                status=JobRunStatus.FAILED,
                error=exc,
                duration_seconds=time.monotonic() - started,
            )
        status = JobRunStatus.SKIPPED if outcome.skipped else JobRunStatus.SUCCEEDED
        return JobRunResult(
            name=name,
            status=status,
            outcome=outcome,
            duration_seconds=time.monotonic() - started,
        )

    def on_exception(self, exc: Exception, name: str) -> None:
        """Log a failure with its traceback. Not affected by a job's quiet flag."""
        self.logger.error(
            "job_error",
            job=name,
            error=str(exc),
            error_type=type(exc).__name__,
            error_category=categorize_error(exc).value,
            exc_info=exc,
        )

    # ------------------------------------------------------------------
    # Single-job entry point
    # ------------------------------------------------------------------

    def invoke(self, name: str, *, quiet: bool = False, force: bool = False) -> RunOutcome:
        """Run exactly one job; log and alert on failure, then re-raise."""
        try:
            job = self.create_job(name, quiet=quiet)
            return job.run(force=force)
        except Exception as exc:
            self.on_exception(exc, name)
            self.handle_exception(exc, name)
            raise

    def handle_exception(self, exc: Exception, name: str) -> None:
        """Runner-level alert for a failed single-job invocation."""
        self.alerts.notify(
            AlertSeverity.ERROR,
            f"Error in job {name}",
            f"{type(exc).__name__}: {exc}",
            source=RUNNER_SOURCE,
            error=exc,
            metadata={"job": name},
        )

    # ------------------------------------------------------------------
    # Detached dispatch
    # ------------------------------------------------------------------

    def build_command(self, descriptor: JobDescriptor) -> list[str]:
        """argv that re-enters jobspine in a fresh process to run one job."""
        if descriptor.source is None:
            raise LaunchError(
                f"Job '{descriptor.name}' has no definition file and can only run in-process",
                retryable=False,
                context={"job": descriptor.name},
            )
        return [
            sys.executable,
            "-m",
            "jobspine",
            "invoke",
            descriptor.name,
            "--sync",
            "--quiet",
            "--jobs-dir",
            str(descriptor.source.parent),
        ]

    def log_path_for(self, name: str, when: datetime | None = None) -> Path:
        """Log artifact path of a detached run started at ``when``."""
        when = when or self._clock()
        return Path(self.settings.log_dir) / f"job-{name}-{when:%Y-%m-%d-%H-%M-%S}.log"

    def dispatch_detached(self, name: str) -> DetachedRun:
        """Start ``name`` in a detached process and return without waiting.

        Raises:
            JobNotFoundError: If ``name`` is not registered
            LaunchError: If the process could not be started
        """
        descriptor = self.registry.get(name)
        command = self.build_command(descriptor)
        log_path = self.log_path_for(name)
        pid = self.launcher.spawn_detached(command, log_path)
        self.logger.info("job_dispatched", job=name, pid=pid, log_path=str(log_path))
        return DetachedRun(name=name, pid=pid, log_path=log_path, command=tuple(command))

    def _dispatch_result(self, descriptor: JobDescriptor) -> JobRunResult:
        started = time.monotonic()
        try:
            detached = self.dispatch_detached(descriptor.name)
        except Exception as exc:
            self.on_exception(exc, descriptor.name)
            return JobRunResult(
                name=descriptor.name,
                status=JobRunStatus.FAILED,
                error=exc,
                duration_seconds=time.monotonic() - started,
            )
        return JobRunResult(
            name=descriptor.name,
            status=JobRunStatus.DISPATCHED,
            pid=detached.pid,
            log_path=detached.log_path,
            duration_seconds=time.monotonic() - started,
        )


def invoke(
    name: str,
    quiet: bool = False,
    force: bool = False,
    jobs_dir: str | Path | None = None,
    *,
    settings: JobSpineSettings | None = None,
    registry: JobRegistry | None = None,
    alerts: AlertDispatcher | None = None,
) -> RunOutcome:
    """Discover ``jobs_dir`` (default: settings) and run exactly one job.

    Jobs already present in ``registry`` are used without discovery.

    Raises:
        Whatever the job raised, after a runner-level alert
    """
    settings = settings or get_settings()
    registry = registry if registry is not None else JobRegistry()
    if name not in registry:
        registry.discover(jobs_dir or settings.jobs_dir)
    runner = JobRunner(registry, settings, alerts=alerts)
    return runner.invoke(name, quiet=quiet, force=force)


__all__ = [
    "JobRunStatus",
    "JobRunResult",
    "BatchReport",
    "DetachedRun",
    "JobRunner",
    "invoke",
]
