"""
Structured error types for jobspine.

Every error raised by the framework itself extends ``JobSpineError`` so that
callers can tell framework failures apart from the exceptions a job's own
``execute()`` raises (those are re-raised unchanged after retries).

Manifesto:
    - **Typed hierarchy:** Config, discovery, registry and launch failures
      each get their own type
    - **Explicit retry semantics:** Each error knows if it's retryable
    - **Error chaining:** The original exception is kept as ``cause``

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────┐
        │                      JobSpineError                        │
        │          (category, retryable, context, cause)           │
        ├──────────────────────────────────────────────────────────┤
        │  ConfigError          JobError              LaunchError  │
        │  (CONFIG)             (JOB)                 (PROCESS)    │
        │     │                    │                               │
        │  InvalidConfigError   JobNotFoundError                   │
        │  ScheduleError        JobRegistrationError               │
        │                       JobsDirectoryNotFoundError         │
        │                       DiscoveryValidationError           │
        └──────────────────────────────────────────────────────────┘

Tags:
    error-handling, exception-hierarchy, jobspine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and alert routing."""

    CONFIG = "CONFIG"
    SCHEDULE = "SCHEDULE"
    DISCOVERY = "DISCOVERY"
    JOB = "JOB"
    STORAGE = "STORAGE"
    PROCESS = "PROCESS"
    ALERT = "ALERT"
    INTERNAL = "INTERNAL"


class JobSpineError(Exception):
    """
    Base exception for all jobspine framework errors.

    All instances carry:
    - **category:** ErrorCategory for classification and routing
    - **retryable:** Whether the failing operation can be retried
    - **context:** Free-form metadata (job name, path, ...)
    - **cause:** Optional underlying exception, also set as ``__cause__``

    Subclasses set ``default_category`` and ``default_retryable``.

    Examples:
        >>> error = JobSpineError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(job="Heartbeat").context
        {'job': 'Heartbeat'}
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context: dict[str, Any] = dict(context or {})
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> JobSpineError:
        """Add context to this error (fluent API)."""
        self.context.update(kwargs)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        if self.context:
            result["context"] = dict(self.context)
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIG ERRORS
# =============================================================================


class ConfigError(JobSpineError):
    """Configuration error. Never retryable: the config must be fixed."""

    default_category = ErrorCategory.CONFIG


class InvalidConfigError(ConfigError):
    """A configuration value is out of range or of the wrong type."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        super().__init__(
            message or f"Invalid value for {key}: {value!r}",
            context={"key": key, "value": repr(value)},
        )
        self.key = key
        self.value = value


class ScheduleError(ConfigError):
    """Malformed cron expression."""

    default_category = ErrorCategory.SCHEDULE

    def __init__(self, schedule: str, reason: str):
        super().__init__(
            f"Invalid schedule {schedule!r}: {reason}",
            context={"schedule": schedule},
        )
        self.schedule = schedule
        self.reason = reason


# =============================================================================
# JOB / REGISTRY ERRORS
# =============================================================================


class JobError(JobSpineError):
    """Error concerning a job definition or the registry."""

    default_category = ErrorCategory.JOB


class JobNotFoundError(JobError):
    """No job registered under the requested name."""

    def __init__(self, name: str, available: list[str] | None = None):
        message = f"Job '{name}' not found"
        if available:
            message += f". Available: {', '.join(available)}"
        super().__init__(message, context={"job": name})
        self.name = name


class JobRegistrationError(JobError):
    """A job could not be registered (e.g. duplicate name)."""


class JobsDirectoryNotFoundError(JobError):
    """The job-definitions directory does not exist."""

    default_category = ErrorCategory.DISCOVERY

    def __init__(self, path: Any):
        super().__init__(f"Jobs directory not found: {path}", context={"path": str(path)})
        self.path = path


class DiscoveryValidationError(JobError):
    """A job-definition file does not expose a valid job class.

    Raised per entry during discovery; the registry logs it and moves on.
    """

    default_category = ErrorCategory.DISCOVERY

    def __init__(self, source: Any, message: str, *, cause: Exception | None = None):
        super().__init__(message, context={"source": str(source)}, cause=cause)
        self.source = source


# =============================================================================
# PROCESS ERRORS
# =============================================================================


class LaunchError(JobSpineError):
    """A detached job process could not be spawned."""

    default_category = ErrorCategory.PROCESS
    default_retryable = True


class StateError(JobSpineError):
    """A job state document could not be written."""

    default_category = ErrorCategory.STORAGE


class AlertDeliveryError(JobSpineError):
    """An alert channel could not deliver an alert."""

    default_category = ErrorCategory.ALERT
    default_retryable = True


def categorize_error(error: Exception) -> ErrorCategory:
    """Best-effort category for any exception."""
    if isinstance(error, JobSpineError):
        return error.category
    if isinstance(error, OSError):
        return ErrorCategory.STORAGE
    return ErrorCategory.INTERNAL


__all__ = [
    "ErrorCategory",
    "JobSpineError",
    # Config
    "ConfigError",
    "InvalidConfigError",
    "ScheduleError",
    # Job / registry
    "JobError",
    "JobNotFoundError",
    "JobRegistrationError",
    "JobsDirectoryNotFoundError",
    "DiscoveryValidationError",
    # Process / storage
    "LaunchError",
    "StateError",
    "AlertDeliveryError",
    # Utilities
    "categorize_error",
]
