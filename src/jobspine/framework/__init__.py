"""jobspine framework -- jobs, the registry and the runner.

Architecture::

    job.py        BaseJob + JobConfig + RunOutcome (the run lifecycle)
    registry.py   JobRegistry, @register_job, directory discovery
    runner.py     JobRunner (batch / detached dispatch) + invoke()
    alerts/       Alert channels and dispatcher
"""

from jobspine.framework.job import BaseJob, JobConfig, RunOutcome
from jobspine.framework.registry import (
    JobDescriptor,
    JobRegistry,
    clear_registry,
    job_registry,
    register_job,
)
from jobspine.framework.runner import (
    BatchReport,
    DetachedRun,
    JobRunner,
    JobRunResult,
    JobRunStatus,
    invoke,
)

__all__ = [
    # Jobs
    "BaseJob",
    "JobConfig",
    "RunOutcome",
    # Registry
    "JobDescriptor",
    "JobRegistry",
    "job_registry",
    "register_job",
    "clear_registry",
    # Runner
    "JobRunner",
    "JobRunResult",
    "JobRunStatus",
    "BatchReport",
    "DetachedRun",
    "invoke",
]
