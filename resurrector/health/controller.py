"""ResurrectorController — orchestrates the alert → remediation pipeline."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from typing import Any

import httpx
import structlog

from resurrector.core.config import Settings, get_settings
from resurrector.core.types import (
    Alert,
    DeploymentState,
    EndpointStatus,
    Outcome,
    SkipReason,
)
from resurrector.director.auth import AuthProvider
from resurrector.director.dispatcher import RemediationDispatcher
from resurrector.director.files import FileAccess
from resurrector.director.status import EndpointStatusTracker
from resurrector.health.alert_tracker import AlertTracker
from resurrector.health.policy import ResurrectionPolicy, RulesResurrectionPolicy
from resurrector.monitor.sinks import NotificationSink, create_sink

logger = structlog.stdlib.get_logger()


class ResurrectorController:
    """Owns the alert tracker, director status, auth and dispatcher.

    Lifecycle: ``run()`` moves the controller from stopped to running, but
    only inside a running asyncio event loop; otherwise it returns False.
    Once running, ``process()`` handles alerts until ``stop()``.

    Per alert, in this order: policy read, record, deployment state,
    fresh director probe, dispatch decision. Recording happens before the
    first await, so alerts for one deployment are recorded in arrival order
    even when their requests complete out of order.

    Usage::

        controller = ResurrectorController(settings)
        controller.run()
        await controller.wait_until_ready()

        outcome = await controller.process(alert)

        await controller.stop()
        await controller.close()
    """

    def __init__(
        self,
        settings: Settings | None = None,
        policy: ResurrectionPolicy | None = None,
        sink: NotificationSink | None = None,
        http: httpx.AsyncClient | None = None,
        auth_http: httpx.AsyncClient | None = None,
        files: FileAccess | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings or get_settings()
        director = self._settings.director

        self._owns_http = http is None
        if http is None:
            http = httpx.AsyncClient(
                timeout=httpx.Timeout(director.request_timeout_secs),
            )
        self._http = http
        self._owns_sink = sink is None
        self._sink = sink or create_sink(self._settings.notifications)
        self._policy = policy or RulesResurrectionPolicy(self._settings.resurrection)

        self._tracker = AlertTracker(self._settings.alert_tracker, clock=clock)
        self._status = EndpointStatusTracker(self._http, director, clock=clock)
        self._auth = AuthProvider(director, files=files, http=auth_http, clock=clock)
        self._dispatcher = RemediationDispatcher(
            self._http, self._auth, self._sink, director,
        )

        self._running = False
        self._startup_task: asyncio.Task[None] | None = None

    # ── Properties ───────────────────────────────────────────────

    @property
    def running(self) -> bool:
        return self._running

    @property
    def endpoint_status(self) -> EndpointStatus:
        return self._status.status

    @property
    def stats(self) -> dict[str, int]:
        return self._dispatcher.stats

    @property
    def tracker(self) -> AlertTracker:
        return self._tracker

    @property
    def status_tracker(self) -> EndpointStatusTracker:
        return self._status

    @property
    def auth(self) -> AuthProvider:
        return self._auth

    @property
    def dispatcher(self) -> RemediationDispatcher:
        return self._dispatcher

    def state_for(self, deployment: str) -> DeploymentState:
        return self._tracker.state_for(deployment)

    # ── Lifecycle ────────────────────────────────────────────────

    def run(self) -> bool:
        """Start the controller. Returns False when no event loop is running."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.error("resurrector_not_started", reason="no running event loop")
            return False

        if self._running:
            return True
        self._running = True
        self._startup_task = loop.create_task(self._startup())
        return True

    async def _startup(self) -> None:
        status = await self._status.check_now()
        logger.info(
            "resurrector_started",
            director=self._settings.director.endpoint,
            director_available=status.available,
            auth_type=status.auth_mode.type,
        )
        await self._status.start()

    async def wait_until_ready(self) -> None:
        """Wait for the initial director probe to finish."""
        if self._startup_task is not None:
            await self._startup_task

    async def stop(self) -> None:
        """Stop accepting alerts. In-flight dispatches are left to finish."""
        if not self._running:
            return
        self._running = False
        if self._startup_task is not None and not self._startup_task.done():
            self._startup_task.cancel()
            try:
                await self._startup_task
            except asyncio.CancelledError:
                pass
        await self._status.stop()
        logger.info("resurrector_stopped", stats=self.stats)

    async def close(self) -> None:
        """Release HTTP clients and sinks this controller created."""
        await self._auth.close()
        if self._owns_sink:
            await self._sink.close()
        if self._owns_http:
            await self._http.aclose()

    # ── Alert processing ─────────────────────────────────────────

    async def on_payload(self, payload: dict[str, Any]) -> Outcome:
        """Parse a raw alert payload and process it."""
        return await self.process(Alert.from_payload(payload))

    async def process(self, alert: Alert) -> Outcome:
        """Handle one alert; failures are returned as outcomes, never raised."""
        if not self._running:
            logger.warning("alert_rejected_not_running", deployment=alert.deployment)
            return Outcome.skipped(SkipReason.NOT_RUNNING)

        if not alert.actionable:
            logger.debug("alert_not_actionable", deployment=alert.deployment)
            return await self._dispatcher.maybe_dispatch(
                alert,
                DeploymentState(deployment=alert.deployment),
                self._status.status,
                resurrection_enabled=False,
            )

        try:
            enabled = self._policy.resurrection_enabled(alert.deployment)
            self._tracker.record(alert)
            state = self._tracker.state_for(alert.deployment)

            status = await self._status.check_now()
            outcome = await self._dispatcher.maybe_dispatch(alert, state, status, enabled)
        except Exception as exc:
            logger.exception("alert_processing_error", deployment=alert.deployment)
            return Outcome.failed(str(exc))

        logger.debug(
            "alert_processed",
            deployment=alert.deployment,
            targets=len(alert.targets),
            outcome=outcome.kind,
            reason=outcome.reason,
        )
        return outcome
