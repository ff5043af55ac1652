"""jobspine core -- leaf primitives with no knowledge of jobs.

Architecture::

    errors.py          Structured error hierarchy (JobSpineError, ...)
    logging.py         structlog configuration + LogContext
    settings.py        pydantic-settings (JOBSPINE_* environment)
    state.py           Per-job JSON key/value store with change callbacks
    scheduling/        Cron matching + file lock manager
"""

from jobspine.core.errors import (
    AlertDeliveryError,
    ConfigError,
    DiscoveryValidationError,
    ErrorCategory,
    InvalidConfigError,
    JobError,
    JobNotFoundError,
    JobRegistrationError,
    JobsDirectoryNotFoundError,
    JobSpineError,
    LaunchError,
    ScheduleError,
    StateError,
)
from jobspine.core.logging import LogContext, configure_logging, get_logger
from jobspine.core.scheduling import FileLockManager, is_due, validate_schedule
from jobspine.core.settings import JobSpineSettings, get_settings, reset_settings
from jobspine.core.state import (
    CallbackShape,
    JobStateStore,
    StateCallback,
    no_args,
    one_arg,
    two_args,
)

__all__ = [
    # Errors
    "ErrorCategory",
    "JobSpineError",
    "ConfigError",
    "InvalidConfigError",
    "ScheduleError",
    "JobError",
    "JobNotFoundError",
    "JobRegistrationError",
    "JobsDirectoryNotFoundError",
    "DiscoveryValidationError",
    "LaunchError",
    "StateError",
    "AlertDeliveryError",
    # Logging
    "configure_logging",
    "get_logger",
    "LogContext",
    # Settings
    "JobSpineSettings",
    "get_settings",
    "reset_settings",
    # Scheduling
    "FileLockManager",
    "is_due",
    "validate_schedule",
    # State
    "CallbackShape",
    "StateCallback",
    "JobStateStore",
    "no_args",
    "one_arg",
    "two_args",
]
