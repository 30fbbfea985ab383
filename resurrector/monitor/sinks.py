"""Notification sinks — where escalation alerts end up."""

from __future__ import annotations

import abc
from typing import Any

import aiohttp
import structlog

from resurrector.core.config import NotificationsConfig, WebhookConfig
from resurrector.core.logging import DECISION_LOGGER

# Dedicated structured logger for escalation records.
decision_logger = structlog.get_logger(DECISION_LOGGER)

logger = structlog.get_logger(__name__)


class NotificationSink(abc.ABC):
    """Receives events of a given kind (e.g. ``"alert"``) with a payload."""

    @abc.abstractmethod
    async def emit(self, kind: str, payload: dict[str, Any]) -> None:
        """Deliver an event. Fire-and-forget: callers ignore the result."""

    async def close(self) -> None:
        """Release resources (HTTP sessions, etc.)."""


class LoggingSink(NotificationSink):
    """Writes every event to the decision log."""

    async def emit(self, kind: str, payload: dict[str, Any]) -> None:
        decision_logger.info("escalation", kind=kind, **payload)


class WebhookSink(NotificationSink):
    """Posts events as JSON to a webhook URL."""

    def __init__(self, config: WebhookConfig) -> None:
        self._url = config.url.get_secret_value()
        self._timeout = aiohttp.ClientTimeout(total=config.timeout_secs)
        self._session: aiohttp.ClientSession | None = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def emit(self, kind: str, payload: dict[str, Any]) -> None:
        await self.send(kind, payload)

    async def send(self, kind: str, payload: dict[str, Any]) -> bool:
        """Post the event. Returns True on a 2xx response."""
        body = {"kind": kind, **payload}
        try:
            session = self._get_session()
            async with session.post(self._url, json=body) as resp:
                if 200 <= resp.status < 300:
                    return True
                text = await resp.text()
                logger.warning(
                    "webhook_send_failed",
                    status=resp.status,
                    body=text[:200],
                )
                return False
        except Exception:
            logger.exception("webhook_send_error")
            return False

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None


class FanoutSink(NotificationSink):
    """Delivers each event to several sinks; one failing sink never blocks the rest."""

    def __init__(self, sinks: list[NotificationSink] | None = None) -> None:
        self._sinks: list[NotificationSink] = sinks or []

    @property
    def sinks(self) -> list[NotificationSink]:
        return list(self._sinks)

    async def emit(self, kind: str, payload: dict[str, Any]) -> None:
        for sink in self._sinks:
            try:
                await sink.emit(kind, payload)
            except Exception:
                logger.exception(
                    "sink_emit_error",
                    sink=type(sink).__name__,
                    kind=kind,
                )

    async def close(self) -> None:
        for sink in self._sinks:
            try:
                await sink.close()
            except Exception:
                logger.exception("sink_close_error", sink=type(sink).__name__)


def create_sink(config: NotificationsConfig) -> FanoutSink:
    """Build the notification sink stack from config."""
    sinks: list[NotificationSink] = []

    if config.log_escalations:
        sinks.append(LoggingSink())

    if config.webhook.enabled:
        sinks.append(WebhookSink(config.webhook))

    return FanoutSink(sinks)
