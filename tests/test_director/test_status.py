"""Tests for EndpointStatusTracker — /info probing, auth-mode detection, polling."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import httpx

from resurrector.core.config import DirectorConfig
from resurrector.core.types import AuthMode, AuthType
from resurrector.director.status import EndpointStatusTracker, _parse_auth_mode

# ── Helpers ─────────────────────────────────────────────────────

_UAA_INFO = {
    "user_authentication": {"type": "uaa", "options": {"url": "uaa-url"}},
}


def _cfg(**overrides: object) -> DirectorConfig:
    defaults: dict[str, object] = {
        "endpoint": "http://foo.bar.com:25555",
        "status_poll_interval_secs": 0,
    }
    defaults.update(overrides)
    return DirectorConfig(**defaults)  # type: ignore[arg-type]


class InfoEndpoint:
    """Serves a scripted sequence of /info responses (last one repeats)."""

    def __init__(self, *responses: Callable[[], httpx.Response]) -> None:
        self._responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        factory = self._responses[min(len(self.requests), len(self._responses)) - 1]
        return factory()


def _ok(body: object) -> Callable[[], httpx.Response]:
    return lambda: httpx.Response(200, json=body)


def _status(code: int, text: str = "Failed") -> Callable[[], httpx.Response]:
    return lambda: httpx.Response(code, text=text)


def _raise(exc: Exception) -> Callable[[], httpx.Response]:
    def factory() -> httpx.Response:
        raise exc
    return factory


def _tracker(endpoint: InfoEndpoint, **overrides: object) -> EndpointStatusTracker:
    http = httpx.AsyncClient(transport=httpx.MockTransport(endpoint))
    return EndpointStatusTracker(http, _cfg(**overrides), clock=lambda: 1234.0)


# ── _parse_auth_mode ───────────────────────────────────────────


class TestParseAuthMode:
    def test_empty_body_is_basic(self) -> None:
        assert _parse_auth_mode({}) == AuthMode.basic()

    def test_uaa_is_oauth(self) -> None:
        mode = _parse_auth_mode(_UAA_INFO)
        assert mode.type == AuthType.OAUTH_CLIENT_CREDENTIALS
        assert mode.issuer_url == "uaa-url"

    def test_non_uaa_type_is_basic(self) -> None:
        body = {"user_authentication": {"type": "basic", "options": {}}}
        assert _parse_auth_mode(body).type == AuthType.BASIC

    def test_malformed_user_authentication(self) -> None:
        assert _parse_auth_mode({"user_authentication": "uaa"}).type == AuthType.BASIC

    def test_uaa_without_options(self) -> None:
        mode = _parse_auth_mode({"user_authentication": {"type": "uaa"}})
        assert mode.type == AuthType.OAUTH_CLIENT_CREDENTIALS
        assert mode.issuer_url == ""


# ── check_now ──────────────────────────────────────────────────


class TestCheckNow:
    async def test_initial_status_unavailable(self) -> None:
        tracker = _tracker(InfoEndpoint(_ok({})))
        assert tracker.available is False
        assert tracker.status.auth_mode.type == AuthType.BASIC

    async def test_success_marks_available(self) -> None:
        endpoint = InfoEndpoint(_ok({}))
        tracker = _tracker(endpoint)
        status = await tracker.check_now()
        assert status.available is True
        assert status.auth_mode.type == AuthType.BASIC
        assert status.last_checked_at == 1234.0
        assert str(endpoint.requests[0].url) == "http://foo.bar.com:25555/info"
        assert endpoint.requests[0].method == "GET"

    async def test_detects_oauth(self) -> None:
        tracker = _tracker(InfoEndpoint(_ok(_UAA_INFO)))
        status = await tracker.check_now()
        assert status.auth_mode == AuthMode.oauth("uaa-url")

    async def test_non_2xx_marks_unavailable(self) -> None:
        tracker = _tracker(InfoEndpoint(_status(500)))
        status = await tracker.check_now()
        assert status.available is False

    async def test_transport_error_marks_unavailable(self) -> None:
        tracker = _tracker(InfoEndpoint(_raise(httpx.ConnectError("refused"))))
        status = await tracker.check_now()
        assert status.available is False

    async def test_timeout_marks_unavailable(self) -> None:
        tracker = _tracker(InfoEndpoint(_raise(httpx.ReadTimeout("slow"))))
        status = await tracker.check_now()
        assert status.available is False

    async def test_invalid_json_marks_unavailable(self) -> None:
        tracker = _tracker(InfoEndpoint(lambda: httpx.Response(200, content=b"not json")))
        status = await tracker.check_now()
        assert status.available is False

    async def test_non_object_body_marks_unavailable(self) -> None:
        tracker = _tracker(InfoEndpoint(_ok(["a", "b"])))
        status = await tracker.check_now()
        assert status.available is False

    async def test_failed_probe_keeps_auth_mode(self) -> None:
        tracker = _tracker(InfoEndpoint(_ok(_UAA_INFO), _status(500)))
        await tracker.check_now()
        status = await tracker.check_now()
        assert status.available is False
        assert status.auth_mode == AuthMode.oauth("uaa-url")

    async def test_recovers_after_failure(self) -> None:
        tracker = _tracker(InfoEndpoint(_status(500), _ok({})))
        assert (await tracker.check_now()).available is False
        assert (await tracker.check_now()).available is True
        assert tracker.probe_count == 2

    async def test_auth_mode_follows_successful_probe(self) -> None:
        tracker = _tracker(InfoEndpoint(_ok(_UAA_INFO), _ok({})))
        await tracker.check_now()
        status = await tracker.check_now()
        assert status.auth_mode.type == AuthType.BASIC


# ── Polling loop ───────────────────────────────────────────────


class TestPolling:
    async def test_zero_interval_does_not_start(self) -> None:
        tracker = _tracker(InfoEndpoint(_ok({})), status_poll_interval_secs=0)
        await tracker.start()
        assert tracker.running is False

    async def test_loop_probes_periodically(self) -> None:
        endpoint = InfoEndpoint(_ok({}))
        tracker = _tracker(endpoint, status_poll_interval_secs=0.01)
        await tracker.start()
        assert tracker.running is True
        await asyncio.sleep(0.1)
        await tracker.stop()
        assert tracker.running is False
        assert len(endpoint.requests) >= 2
        assert tracker.available is True

    async def test_loop_survives_failures(self) -> None:
        endpoint = InfoEndpoint(_raise(httpx.ConnectError("refused")))
        tracker = _tracker(endpoint, status_poll_interval_secs=0.01)
        await tracker.start()
        await asyncio.sleep(0.1)
        await tracker.stop()
        assert len(endpoint.requests) >= 2
        assert tracker.available is False

    async def test_stop_when_not_started(self) -> None:
        tracker = _tracker(InfoEndpoint(_ok({})))
        await tracker.stop()  # should not raise
