"""RemediationDispatcher — decides whether to scan-and-fix and sends the request."""

from __future__ import annotations

import base64
import json
from urllib.parse import quote

import httpx
import structlog

from resurrector.core.config import DirectorConfig, get_settings
from resurrector.core.types import (
    Alert,
    AuthType,
    Credential,
    DeploymentState,
    EndpointStatus,
    EscalationAlert,
    Outcome,
    RemediationRequest,
    SkipReason,
)
from resurrector.director.auth import AuthProvider
from resurrector.director.exceptions import AuthError, DirectorTransportError
from resurrector.monitor.sinks import NotificationSink

logger = structlog.stdlib.get_logger()

DISABLED_TITLE = "Resurrection is disabled by resurrection config"
MELTDOWN_TITLE = "We are in meltdown"


def _authorization_header(credential: Credential) -> str:
    if credential.mode == AuthType.BASIC:
        user, password = credential.pair
        raw = f"{user}:{password}".encode()
        return f"Basic {base64.b64encode(raw).decode('ascii')}"
    return credential.auth_header


def _instances_label(alert: Alert) -> str:
    """``instance: 'j/i'`` for one target, ``instances: 'a/1', 'b/2'`` for many."""
    labels = ", ".join(f"'{t.label}'" for t in alert.targets)
    noun = "instance" if len(alert.targets) == 1 else "instances"
    return f"{noun}: {labels}"


def build_escalation(
    alert: Alert,
    state: DeploymentState,
    reason: SkipReason,
) -> EscalationAlert:
    """Escalation alert for a skipped resurrection (DISABLED or MELTDOWN)."""
    summary = f"Skipping resurrection for {_instances_label(alert)}; {state.summary}"
    if reason == SkipReason.DISABLED:
        title = DISABLED_TITLE
        summary = f"{summary} because of resurrection config"
    else:
        title = MELTDOWN_TITLE
    return EscalationAlert(
        severity=alert.severity,
        title=title,
        summary=summary,
        deployment=alert.deployment,
    )


class RemediationDispatcher:
    """Applies the dispatch decision rules to an alert.

    First match wins:

    1. no deployment or no targets → IGNORED
    2. director unavailable → SKIPPED(ENDPOINT_DOWN), silently
    3. resurrection disabled → escalation + SKIPPED(DISABLED)
    4. deployment in meltdown → escalation + SKIPPED(MELTDOWN)
    5. otherwise PUT scan_and_fix → SENT, or FAILED on auth/transport errors

    A request counts as SENT whatever the response status; only failing to
    transmit it is a failure. Nothing is retried.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        auth: AuthProvider,
        sink: NotificationSink,
        config: DirectorConfig | None = None,
    ) -> None:
        self._http = http
        self._auth = auth
        self._sink = sink
        self._config = config or get_settings().director

        self._sent = 0
        self._failed = 0
        self._skipped = 0
        self._ignored = 0

    @property
    def stats(self) -> dict[str, int]:
        return {
            "sent": self._sent,
            "failed": self._failed,
            "skipped": self._skipped,
            "ignored": self._ignored,
        }

    def scan_and_fix_url(self, deployment: str) -> str:
        endpoint = self._config.endpoint.rstrip("/")
        return f"{endpoint}/deployments/{quote(deployment, safe='')}/scan_and_fix"

    def build_request(self, alert: Alert, credential: Credential) -> RemediationRequest:
        body = json.dumps(
            {"jobs": alert.jobs_to_instance_ids()},
            separators=(",", ":"),
        )
        return RemediationRequest(
            url=self.scan_and_fix_url(alert.deployment),
            headers={
                "Content-Type": "application/json",
                "Authorization": _authorization_header(credential),
            },
            body=body,
        )

    async def maybe_dispatch(
        self,
        alert: Alert,
        state: DeploymentState,
        endpoint_status: EndpointStatus,
        resurrection_enabled: bool,
    ) -> Outcome:
        if not alert.actionable:
            self._ignored += 1
            return Outcome.ignored()

        if not endpoint_status.available:
            self._skipped += 1
            logger.info(
                "resurrection_skipped_director_down",
                deployment=alert.deployment,
            )
            return Outcome.skipped(SkipReason.ENDPOINT_DOWN)

        if not resurrection_enabled:
            self._skipped += 1
            await self._escalate(build_escalation(alert, state, SkipReason.DISABLED))
            return Outcome.skipped(SkipReason.DISABLED)

        if state.meltdown:
            self._skipped += 1
            await self._escalate(build_escalation(alert, state, SkipReason.MELTDOWN))
            return Outcome.skipped(SkipReason.MELTDOWN)

        return await self._send(alert, endpoint_status)

    async def _send(self, alert: Alert, endpoint_status: EndpointStatus) -> Outcome:
        try:
            credential = await self._auth.authorization_for(endpoint_status)
        except AuthError as exc:
            self._failed += 1
            logger.warning(
                "resurrection_auth_failed",
                deployment=alert.deployment,
                error=str(exc),
            )
            return Outcome.failed(str(exc))

        request = self.build_request(alert, credential)
        try:
            response = await self.send_put_request(request)
        except DirectorTransportError as exc:
            self._failed += 1
            logger.warning(
                "resurrection_request_failed",
                deployment=alert.deployment,
                url=request.url,
                error=str(exc),
            )
            return Outcome.failed(str(exc))

        self._sent += 1
        if response.is_success:
            logger.info(
                "resurrection_requested",
                deployment=alert.deployment,
                jobs=alert.jobs_to_instance_ids(),
                status=response.status_code,
            )
        else:
            logger.warning(
                "resurrection_request_rejected",
                deployment=alert.deployment,
                status=response.status_code,
                body=response.text[:200],
            )
        return Outcome.sent(response.status_code)

    async def send_put_request(self, request: RemediationRequest) -> httpx.Response:
        """PUT the request; transport failures and malformed URLs become DirectorTransportError."""
        try:
            return await self._http.put(
                request.url,
                headers=request.headers,
                content=request.body,
                timeout=self._config.request_timeout_secs,
            )
        except httpx.TimeoutException as exc:
            raise DirectorTransportError(f"Request to {request.url} timed out") from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise DirectorTransportError(
                f"Request to {request.url} failed: {exc}"
            ) from exc

    async def _escalate(self, escalation: EscalationAlert) -> None:
        logger.warning(
            "resurrection_skipped",
            deployment=escalation.deployment,
            title=escalation.title,
            summary=escalation.summary,
        )
        try:
            await self._sink.emit("alert", escalation.model_dump())
        except Exception:
            logger.exception(
                "escalation_emit_error",
                deployment=escalation.deployment,
                title=escalation.title,
            )
