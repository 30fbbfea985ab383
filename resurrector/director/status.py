"""EndpointStatusTracker — probes the director's /info endpoint.

The probe answers two questions: is the director reachable, and which
authentication mode does it expect. A failed probe marks the director
unavailable but keeps the last known auth mode.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from typing import Any

import httpx
import structlog

from resurrector.core.config import DirectorConfig, get_settings
from resurrector.core.types import AuthMode, EndpointStatus

logger = structlog.stdlib.get_logger()

_INFO_PATH = "/info"
_UAA_AUTH_TYPE = "uaa"


def _parse_auth_mode(body: dict[str, Any]) -> AuthMode:
    """Extract the advertised auth mode from an /info response body.

    Expected structure::

        {"user_authentication": {"type": "uaa", "options": {"url": "https://uaa"}}}

    Anything else means basic auth.
    """
    user_auth = body.get("user_authentication")
    if not isinstance(user_auth, dict):
        return AuthMode.basic()
    if user_auth.get("type") != _UAA_AUTH_TYPE:
        return AuthMode.basic()
    options = user_auth.get("options")
    issuer_url = ""
    if isinstance(options, dict):
        issuer_url = str(options.get("url") or "")
    return AuthMode.oauth(issuer_url)


class EndpointStatusTracker:
    """Tracks director availability and advertised auth mode.

    ``check_now()`` performs a single probe and is called on controller start
    and again before every remediation dispatch. ``start()`` additionally runs
    a background loop probing every ``status_poll_interval_secs``.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        config: DirectorConfig | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._http = http
        self._config = config or get_settings().director
        self._clock = clock
        self._status = EndpointStatus()
        self._task: asyncio.Task[None] | None = None
        self._running = False
        self._probe_count = 0

    @property
    def status(self) -> EndpointStatus:
        """Last known endpoint status."""
        return self._status

    @property
    def available(self) -> bool:
        return self._status.available

    @property
    def probe_count(self) -> int:
        return self._probe_count

    @property
    def running(self) -> bool:
        """Whether the background polling loop is active."""
        return self._running

    @property
    def info_url(self) -> str:
        return f"{self._config.endpoint.rstrip('/')}{_INFO_PATH}"

    async def check_now(self) -> EndpointStatus:
        """Probe the director once and update the tracked status."""
        self._probe_count += 1
        previous = self._status
        now = self._clock()

        body = await self._fetch_info()
        if body is None:
            self._status = EndpointStatus(
                available=False,
                auth_mode=previous.auth_mode,
                last_checked_at=now,
            )
        else:
            self._status = EndpointStatus(
                available=True,
                auth_mode=_parse_auth_mode(body),
                last_checked_at=now,
            )

        if previous.available != self._status.available:
            if self._status.available:
                logger.info(
                    "director_became_available",
                    url=self.info_url,
                    auth_type=self._status.auth_mode.type,
                )
            elif previous.last_checked_at:
                logger.warning("director_became_unavailable", url=self.info_url)

        return self._status

    async def _fetch_info(self) -> dict[str, Any] | None:
        try:
            response = await self._http.get(
                self.info_url,
                timeout=self._config.status_timeout_secs,
            )
        except httpx.HTTPError as exc:
            logger.warning("director_status_request_failed", url=self.info_url, error=str(exc))
            return None

        if not response.is_success:
            logger.warning(
                "director_status_http_error",
                url=self.info_url,
                status=response.status_code,
            )
            return None

        try:
            body = response.json()
        except ValueError:
            logger.warning("director_status_invalid_json", url=self.info_url)
            return None

        if not isinstance(body, dict):
            logger.warning("director_status_non_object", url=self.info_url)
            return None
        return body

    # ── Lifecycle ────────────────────────────────────────────────

    async def start(self) -> None:
        """Start the background polling loop (no-op when the interval is 0)."""
        if self._running or self._config.status_poll_interval_secs <= 0:
            return
        self._running = True
        self._task = asyncio.create_task(self._poll_loop())
        logger.info(
            "director_status_polling_started",
            poll_interval=self._config.status_poll_interval_secs,
        )

    async def stop(self) -> None:
        """Stop the polling loop."""
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _poll_loop(self) -> None:
        interval = self._config.status_poll_interval_secs
        while self._running:
            try:
                await asyncio.sleep(interval)
            except asyncio.CancelledError:
                break
            try:
                await self.check_now()
            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception("director_status_poll_error")
