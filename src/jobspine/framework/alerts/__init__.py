"""
Alerting package.

Replaces per-job notifier wiring with one dispatcher that fans alerts
out to the configured channels (console, webhook).
"""

from jobspine.framework.alerts.channels import BaseChannel, ConsoleChannel, WebhookChannel
from jobspine.framework.alerts.dispatcher import AlertDispatcher, build_dispatcher
from jobspine.framework.alerts.protocol import (
    Alert,
    AlertChannel,
    AlertSeverity,
    ChannelType,
    DeliveryResult,
)

__all__ = [
    # Enums
    "AlertSeverity",
    "ChannelType",
    # Data classes
    "Alert",
    "DeliveryResult",
    # Protocols
    "AlertChannel",
    # Implementations
    "BaseChannel",
    "ConsoleChannel",
    "WebhookChannel",
    # Dispatch
    "AlertDispatcher",
    "build_dispatcher",
]
