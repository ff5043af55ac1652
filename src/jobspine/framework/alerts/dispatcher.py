"""Alert dispatcher: routes one alert to every matching channel.

A broken channel must never fail a job, so delivery problems (a channel
returning a failed ``DeliveryResult`` or raising) are logged and reported
in the returned results, never raised.
"""

from __future__ import annotations

from typing import Any

from jobspine.core.logging import get_logger
from jobspine.core.settings import JobSpineSettings
from jobspine.framework.alerts.channels import ConsoleChannel, WebhookChannel
from jobspine.framework.alerts.protocol import (
    Alert,
    AlertChannel,
    AlertSeverity,
    DeliveryResult,
)


class AlertDispatcher:
    """
    Named set of alert channels.

    Supports:
    - Registering/unregistering channels by name
    - Severity filtering per channel (``should_send``)
    - Fan-out of one alert to all matching channels
    """

    def __init__(self, channels: list[AlertChannel] | None = None, *, logger: Any = None):
        self._channels: dict[str, AlertChannel] = {}
        self.logger = logger or get_logger(__name__)
        for channel in channels or []:
            self.register(channel)

    def register(self, channel: AlertChannel) -> None:
        """Register an alert channel (replaces one with the same name)."""
        self._channels[channel.name] = channel

    def unregister(self, name: str) -> None:
        """Unregister a channel by name."""
        self._channels.pop(name, None)

    def get(self, name: str) -> AlertChannel | None:
        """Get a channel by name."""
        return self._channels.get(name)

    def list_channels(self) -> list[str]:
        """List all registered channel names."""
        return sorted(self._channels.keys())

    def __len__(self) -> int:
        return len(self._channels)

    def send(self, alert: Alert) -> list[DeliveryResult]:
        """Send alert to all matching channels."""
        results = []
        for channel in self._channels.values():
            if not channel.should_send(alert):
                continue
            try:
                result = channel.send(alert)
            except Exception as e:
                result = DeliveryResult.fail(channel.name, e)
            if not result.success:
                self.logger.warning(
                    "alert_delivery_failed",
                    channel=channel.name,
                    source=alert.source,
                    title=alert.title,
                    error=result.message,
                )
            results.append(result)
        return results

    def notify(
        self,
        severity: AlertSeverity,
        title: str,
        message: str,
        source: str,
        **kwargs: Any,
    ) -> list[DeliveryResult]:
        """
        Build an ``Alert`` and send it to all channels.

        Usage:
            dispatcher.notify(
                AlertSeverity.ERROR,
                "Job failed",
                "Heartbeat failed after 3 attempts",
                source="Heartbeat",
            )
        """
        alert = Alert(
            severity=severity,
            title=title,
            message=message,
            source=source,
            **kwargs,
        )
        return self.send(alert)


def build_dispatcher(
    settings: JobSpineSettings, *, logger: Any = None
) -> AlertDispatcher:
    """Create a dispatcher with the channels enabled in ``settings``.

    With no channel configured the dispatcher is empty and alerts are
    dropped; the lifecycle log lines still record every failure.
    """
    dispatcher = AlertDispatcher(logger=logger)
    if settings.alert_console:
        dispatcher.register(ConsoleChannel())
    if settings.alert_webhook_url:
        dispatcher.register(WebhookChannel("webhook", settings.alert_webhook_url))
    return dispatcher


__all__ = ["AlertDispatcher", "build_dispatcher"]
