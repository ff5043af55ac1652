"""
Alert data types and the channel contract.

A job run produces at most a couple of alerts (terminal failure, optional
success, runner-level failure of a single invocation). Each one is an
``Alert``; channels turn it into console output or an HTTP payload and
report back with a ``DeliveryResult``.

Payload shape (``Alert.to_dict``)::

    {
      "severity": "ERROR",
      "title": "Job Heartbeat failed",
      "message": "RuntimeError: boom",
      "text": "[ERROR] Job Heartbeat failed: RuntimeError: boom",
      "source": "Heartbeat",
      "hostname": "cron-01",
      "created_at": "2024-03-05T07:08:09",
      "error": {...},       # only with an exception
      "metadata": {...}     # only when non-empty
    }

``text`` is a ready-made one-liner so chat webhooks that only read a
``text`` field (Slack, Mattermost, Telegram bridges) work unchanged.
"""

from __future__ import annotations

import socket
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from jobspine.core.errors import JobSpineError


class AlertSeverity(str, Enum):
    """Alert severity, ordered INFO < WARNING < ERROR < CRITICAL."""

    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def __lt__(self, other: AlertSeverity) -> bool:
        return self.rank < other.rank

    def __le__(self, other: AlertSeverity) -> bool:
        return self.rank <= other.rank

    def __gt__(self, other: AlertSeverity) -> bool:
        return self.rank > other.rank

    def __ge__(self, other: AlertSeverity) -> bool:
        return self.rank >= other.rank


_SEVERITY_RANK = {severity: rank for rank, severity in enumerate(AlertSeverity)}


class ChannelType(str, Enum):
    CONSOLE = "console"
    WEBHOOK = "webhook"
    CUSTOM = "custom"


def _error_payload(error: BaseException) -> dict[str, Any]:
    if isinstance(error, JobSpineError):
        return error.to_dict()
    return {"error_type": type(error).__name__, "message": str(error)}


@dataclass
class Alert:
    """
    One notification about a job.

    ``source`` is the job name, or ``"runner"`` when the runner reports a
    failed single-job invocation. ``error`` is the exception behind the
    alert, if any; it does not have to be a framework error since job
    code raises whatever it likes. ``hostname`` is the machine the job
    ran on.
    """

    severity: AlertSeverity
    title: str
    message: str
    source: str

    error: BaseException | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    hostname: str = field(default_factory=socket.gethostname)
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def text(self) -> str:
        return f"[{self.severity.value}] {self.title}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "severity": self.severity.value,
            "title": self.title,
            "message": self.message,
            "text": self.text,
            "source": self.source,
            "hostname": self.hostname,
            "created_at": self.created_at.isoformat(),
        }
        if self.error is not None:
            payload["error"] = _error_payload(self.error)
        if self.metadata:
            payload["metadata"] = dict(self.metadata)
        return payload


@dataclass
class DeliveryResult:
    """Outcome of handing one alert to one channel."""

    channel_name: str
    success: bool
    message: str | None = None
    response: dict[str, Any] | None = None
    error: Exception | None = None
    delivered_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def ok(cls, channel_name: str, message: str | None = None, **kwargs: Any) -> DeliveryResult:
        return cls(channel_name, True, message, **kwargs)

    @classmethod
    def fail(cls, channel_name: str, error: Exception) -> DeliveryResult:
        return cls(channel_name, False, str(error), error=error)


@runtime_checkable
class AlertChannel(Protocol):
    """
    What the dispatcher needs from a channel.

    ``should_send`` filters (severity, enabled); ``send`` delivers and
    reports problems through the returned ``DeliveryResult``. The
    dispatcher also survives a ``send`` that raises.
    """

    @property
    def name(self) -> str: ...

    @property
    def channel_type(self) -> ChannelType: ...

    def should_send(self, alert: Alert) -> bool: ...

    def send(self, alert: Alert) -> DeliveryResult: ...


__all__ = [
    "AlertSeverity",
    "ChannelType",
    "Alert",
    "DeliveryResult",
    "AlertChannel",
]
