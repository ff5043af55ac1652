"""
jobspine - recurring jobs with cron schedules, file locks and retries.

Write a job::

    from jobspine import BaseJob, JobConfig

    class Heartbeat(BaseJob):
        config = JobConfig(schedule="*/5 * * * *")

        def execute(self) -> None:
            self.logger.info("beat")

and run every due job from a crontab line: ``* * * * * jobspine run``.
"""

__version__ = "0.1.0"

from jobspine.core.state import no_args, one_arg, two_args
from jobspine.execution.timeout import check_deadline, remaining_time
from jobspine.framework import (
    BaseJob,
    BatchReport,
    JobConfig,
    JobRegistry,
    JobRunner,
    RunOutcome,
    invoke,
    register_job,
)

__all__ = [
    "__version__",
    "BaseJob",
    "JobConfig",
    "RunOutcome",
    "JobRegistry",
    "register_job",
    "JobRunner",
    "BatchReport",
    "invoke",
    "check_deadline",
    "remaining_time",
    "no_args",
    "one_arg",
    "two_args",
]
