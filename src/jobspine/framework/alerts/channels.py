"""Alert channels.

Manifesto:
    Job authors should not care where an alert goes. A channel decides
    whether an alert is for it (severity, enabled) and how to deliver it.
    Two channels ship with jobspine:

    - **ConsoleChannel:** rich-formatted output on stderr, for
      development and for detached runs whose output is a log artifact
    - **WebhookChannel:** JSON POST to any URL, so Slack/Teams/PagerDuty
      bridges work without dedicated channel code

Tags:
    jobspine, framework, alerts, console, webhook

Doc-Types:
    api-reference
"""

from __future__ import annotations

import json
import urllib.error
import urllib.request
from abc import ABC, abstractmethod
from typing import Any

from rich.console import Console

from jobspine.core.errors import AlertDeliveryError
from jobspine.framework.alerts.protocol import (
    Alert,
    AlertSeverity,
    ChannelType,
    DeliveryResult,
)


class BaseChannel(ABC):
    """
    Base class for alert channel implementations.

    Provides common functionality:
    - Severity filtering
    - Enable/disable
    """

    def __init__(
        self,
        name: str,
        channel_type: ChannelType,
        *,
        min_severity: AlertSeverity = AlertSeverity.ERROR,
        enabled: bool = True,
    ):
        self._name = name
        self._channel_type = channel_type
        self._min_severity = min_severity
        self._enabled = enabled

    @property
    def name(self) -> str:
        return self._name

    @property
    def channel_type(self) -> ChannelType:
        return self._channel_type

    @property
    def min_severity(self) -> AlertSeverity:
        return self._min_severity

    @property
    def enabled(self) -> bool:
        return self._enabled

    def enable(self) -> None:
        """Enable the channel."""
        self._enabled = True

    def disable(self) -> None:
        """Disable the channel."""
        self._enabled = False

    def should_send(self, alert: Alert) -> bool:
        """Check if alert should be sent."""
        if not self._enabled:
            return False
        return alert.severity >= self._min_severity

    @abstractmethod
    def send(self, alert: Alert) -> DeliveryResult:
        """Send alert to the channel."""
        ...


_SEVERITY_STYLES = {
    AlertSeverity.INFO: "blue",
    AlertSeverity.WARNING: "yellow",
    AlertSeverity.ERROR: "red",
    AlertSeverity.CRITICAL: "bold magenta",
}


class ConsoleChannel(BaseChannel):
    """
    Console output channel.

    Prints alerts to stderr through a rich ``Console`` (pass one in to
    capture output).
    """

    def __init__(
        self,
        name: str = "console",
        *,
        min_severity: AlertSeverity = AlertSeverity.INFO,
        console: Console | None = None,
        **kwargs: Any,
    ):
        super().__init__(name, ChannelType.CONSOLE, min_severity=min_severity, **kwargs)
        self._console = console or Console(stderr=True)

    def send(self, alert: Alert) -> DeliveryResult:
        """Print alert to console."""
        style = _SEVERITY_STYLES.get(alert.severity, "")
        self._console.print(f"[{style}][{alert.severity.value}] {alert.title}[/]")
        self._console.print(f"  Source: {alert.source}", highlight=False)
        self._console.print(f"  Host: {alert.hostname}", highlight=False)
        self._console.print(f"  Message: {alert.message}", highlight=False)
        return DeliveryResult.ok(self._name)


class WebhookChannel(BaseChannel):
    """
    Generic webhook channel.

    POSTs ``alert.to_dict()`` as JSON to a URL.
    """

    def __init__(
        self,
        name: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        timeout: float = 10.0,
        min_severity: AlertSeverity = AlertSeverity.INFO,
        **kwargs: Any,
    ):
        super().__init__(name, ChannelType.WEBHOOK, min_severity=min_severity, **kwargs)
        self._url = url
        self._headers = headers or {}
        self._timeout = timeout

    @property
    def url(self) -> str:
        return self._url

    def send(self, alert: Alert) -> DeliveryResult:
        """Send alert to webhook."""
        headers = {"Content-Type": "application/json"}
        headers.update(self._headers)

        try:
            req = urllib.request.Request(
                self._url,
                data=json.dumps(alert.to_dict(), default=str).encode("utf-8"),
                headers=headers,
                method="POST",
            )
            with urllib.request.urlopen(req, timeout=self._timeout) as response:
                return DeliveryResult.ok(
                    self._name,
                    response={"status": response.status},
                )
        except urllib.error.URLError as e:
            return DeliveryResult.fail(
                self._name,
                AlertDeliveryError(str(e), context={"url": self._url}, cause=e),
            )
        except Exception as e:
            return DeliveryResult.fail(self._name, e)


__all__ = ["BaseChannel", "ConsoleChannel", "WebhookChannel"]
