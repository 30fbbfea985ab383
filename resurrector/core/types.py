"""Domain types for alert tracking, director access and remediation outcomes."""

from __future__ import annotations

import time
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, SecretStr

ESCALATION_SOURCE = "HM plugin resurrector"


# ── Alerts ──────────────────────────────────────────────────────


class AlertTarget(BaseModel):
    """One (job, instance) pair an alert is about."""

    model_config = {"frozen": True}

    job: str
    instance_id: str

    @property
    def label(self) -> str:
        return f"{self.job}/{self.instance_id}"


class Alert(BaseModel):
    """Immutable health observation about one or more instances of a deployment.

    Single-target alerts carry exactly one target; aggregated alerts carry
    many, in job order.
    """

    model_config = {"frozen": True}

    deployment: str = ""
    targets: tuple[AlertTarget, ...] = ()
    severity: int = 1
    timestamp: float = Field(default_factory=time.time)

    @property
    def actionable(self) -> bool:
        """False when the alert has no deployment or no targets."""
        return bool(self.deployment) and bool(self.targets)

    def jobs_to_instance_ids(self) -> dict[str, list[str]]:
        """Group targets by job, keeping first-seen order."""
        grouped: dict[str, list[str]] = {}
        for target in self.targets:
            grouped.setdefault(target.job, []).append(target.instance_id)
        return grouped

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Alert:
        """Build an Alert from a health-monitor alert payload.

        Recognised keys::

            {
                "deployment": "d",
                "job": "j", "instance_id": "i",             # single target
                "jobs_to_instance_ids": {"j": ["i", ...]},  # aggregated
                "severity": 1,
                "created_at": 1700000000,
            }

        Missing or malformed target data produces a non-actionable alert.
        """
        deployment = payload.get("deployment") or ""
        if not isinstance(deployment, str):
            deployment = str(deployment)

        targets: list[AlertTarget] = []
        grouped = payload.get("jobs_to_instance_ids")
        if isinstance(grouped, dict):
            for job, instance_ids in grouped.items():
                if not isinstance(instance_ids, list):
                    continue
                for instance_id in instance_ids:
                    if job and instance_id:
                        targets.append(
                            AlertTarget(job=str(job), instance_id=str(instance_id)),
                        )
        else:
            job = payload.get("job")
            instance_id = payload.get("instance_id")
            if job and instance_id:
                targets.append(AlertTarget(job=str(job), instance_id=str(instance_id)))

        try:
            severity = int(payload.get("severity", 1))
        except (TypeError, ValueError):
            severity = 1

        try:
            timestamp = float(payload["created_at"])
        except (KeyError, TypeError, ValueError):
            timestamp = time.time()

        return cls(
            deployment=deployment,
            targets=tuple(targets),
            severity=severity,
            timestamp=timestamp,
        )


class DeploymentState(BaseModel):
    """Snapshot of a deployment's recent alert activity."""

    deployment: str
    managed: bool = False
    meltdown: bool = False
    summary: str = ""
    alert_count: int = 0
    instance_count: int = 0


class EscalationAlert(BaseModel):
    """Alert handed to the notification sink when resurrection is skipped."""

    severity: int
    title: str
    summary: str
    source: str = ESCALATION_SOURCE
    deployment: str
    created_at: int = Field(default_factory=lambda: int(time.time()))


# ── Director access ─────────────────────────────────────────────


class AuthType(StrEnum):
    """Authentication scheme advertised by the director."""

    BASIC = "BASIC"
    OAUTH_CLIENT_CREDENTIALS = "OAUTH_CLIENT_CREDENTIALS"


class AuthMode(BaseModel):
    """Tagged auth variant: Basic, or OAuth client credentials with an issuer."""

    model_config = {"frozen": True}

    type: AuthType = AuthType.BASIC
    issuer_url: str = ""

    @classmethod
    def basic(cls) -> AuthMode:
        return cls()

    @classmethod
    def oauth(cls, issuer_url: str) -> AuthMode:
        return cls(type=AuthType.OAUTH_CLIENT_CREDENTIALS, issuer_url=issuer_url)


class EndpointStatus(BaseModel):
    """Last known reachability and auth mode of the director."""

    available: bool = False
    auth_mode: AuthMode = AuthMode()
    last_checked_at: float = 0.0


class AuthToken(BaseModel):
    """Cached OAuth bearer token."""

    mode: AuthType = AuthType.OAUTH_CLIENT_CREDENTIALS
    issuer_url: str = ""
    bearer_value: str
    auth_header: str
    expires_at: float
    refresh_at: float | None = None

    def valid_at(self, now: float) -> bool:
        """True until the refresh point, or expiry when none was set."""
        limit = self.expires_at if self.refresh_at is None else self.refresh_at
        return now < min(limit, self.expires_at)


class Credential(BaseModel):
    """Ready-to-use authorization material for one outbound request."""

    mode: AuthType
    username: str = ""
    password: SecretStr = SecretStr("")
    auth_header: str = ""

    @property
    def pair(self) -> tuple[str, str]:
        """Basic-auth (username, password) pair."""
        return (self.username, self.password.get_secret_value())


class RemediationRequest(BaseModel):
    """Outbound scan-and-fix request — derived, never stored."""

    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    body: str


# ── Outcomes ────────────────────────────────────────────────────


class OutcomeKind(StrEnum):
    """Result of handling one alert."""

    IGNORED = "IGNORED"
    SKIPPED = "SKIPPED"
    SENT = "SENT"
    FAILED = "FAILED"


class SkipReason(StrEnum):
    """Why a remediation was skipped."""

    ENDPOINT_DOWN = "ENDPOINT_DOWN"
    DISABLED = "DISABLED"
    MELTDOWN = "MELTDOWN"
    NOT_RUNNING = "NOT_RUNNING"


class Outcome(BaseModel):
    """What the dispatcher did with an alert."""

    kind: OutcomeKind
    reason: SkipReason | None = None
    status_code: int | None = None
    error: str = ""

    @classmethod
    def ignored(cls) -> Outcome:
        return cls(kind=OutcomeKind.IGNORED)

    @classmethod
    def skipped(cls, reason: SkipReason) -> Outcome:
        return cls(kind=OutcomeKind.SKIPPED, reason=reason)

    @classmethod
    def sent(cls, status_code: int) -> Outcome:
        return cls(kind=OutcomeKind.SENT, status_code=status_code)

    @classmethod
    def failed(cls, error: str) -> Outcome:
        return cls(kind=OutcomeKind.FAILED, error=error)
