"""Escalation delivery — notification sinks and decision logging."""

from resurrector.monitor.sinks import (
    FanoutSink,
    LoggingSink,
    NotificationSink,
    WebhookSink,
    create_sink,
)

__all__ = [
    "FanoutSink",
    "LoggingSink",
    "NotificationSink",
    "WebhookSink",
    "create_sink",
]
