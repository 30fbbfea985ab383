"""Tests for domain types — alert ingestion, grouping, outcomes."""

from __future__ import annotations

import time

import pytest
from pydantic import ValidationError

from resurrector.core.types import (
    Alert,
    AlertTarget,
    AuthMode,
    AuthToken,
    AuthType,
    Credential,
    EscalationAlert,
    Outcome,
    OutcomeKind,
    SkipReason,
)


class TestAlertFromPayload:
    def test_single_target(self) -> None:
        alert = Alert.from_payload({
            "deployment": "d",
            "job": "j",
            "instance_id": "i",
            "severity": 1,
            "created_at": 1000,
        })
        assert alert.deployment == "d"
        assert alert.targets == (AlertTarget(job="j", instance_id="i"),)
        assert alert.severity == 1
        assert alert.timestamp == 1000.0
        assert alert.actionable is True

    def test_aggregated_targets(self) -> None:
        alert = Alert.from_payload({
            "deployment": "mydeployment",
            "jobs_to_instance_ids": {
                "job-1": ["instance-id-1", "instance-id-3"],
                "job-2": ["instance-id-2"],
            },
            "severity": 1,
        })
        assert [t.label for t in alert.targets] == [
            "job-1/instance-id-1",
            "job-1/instance-id-3",
            "job-2/instance-id-2",
        ]

    def test_missing_deployment_not_actionable(self) -> None:
        alert = Alert.from_payload({"job": "j", "instance_id": "i"})
        assert alert.deployment == ""
        assert alert.actionable is False

    def test_missing_targets_not_actionable(self) -> None:
        alert = Alert.from_payload({"deployment": "d", "severity": 2})
        assert alert.targets == ()
        assert alert.actionable is False

    def test_empty_payload(self) -> None:
        alert = Alert.from_payload({})
        assert alert.actionable is False

    def test_malformed_grouping_skipped(self) -> None:
        alert = Alert.from_payload({
            "deployment": "d",
            "jobs_to_instance_ids": {"job-1": "not-a-list", "job-2": ["id-2"]},
        })
        assert [t.label for t in alert.targets] == ["job-2/id-2"]

    def test_bad_severity_defaults(self) -> None:
        alert = Alert.from_payload({"deployment": "d", "severity": "high"})
        assert alert.severity == 1

    def test_missing_created_at_defaults_to_now(self) -> None:
        before = time.time()
        alert = Alert.from_payload({"deployment": "d"})
        assert alert.timestamp >= before


class TestAlertGrouping:
    def test_jobs_to_instance_ids_preserves_order(self) -> None:
        alert = Alert(
            deployment="d",
            targets=(
                AlertTarget(job="job-2", instance_id="id-2"),
                AlertTarget(job="job-1", instance_id="id-1"),
                AlertTarget(job="job-2", instance_id="id-4"),
            ),
        )
        grouped = alert.jobs_to_instance_ids()
        assert list(grouped) == ["job-2", "job-1"]
        assert grouped["job-2"] == ["id-2", "id-4"]

    def test_alert_is_frozen(self) -> None:
        alert = Alert(deployment="d")
        with pytest.raises(ValidationError):
            alert.deployment = "other"  # type: ignore[misc]


class TestAuthTypes:
    def test_auth_mode_variants(self) -> None:
        assert AuthMode.basic().type == AuthType.BASIC
        oauth = AuthMode.oauth("https://uaa")
        assert oauth.type == AuthType.OAUTH_CLIENT_CREDENTIALS
        assert oauth.issuer_url == "https://uaa"

    def test_token_validity(self) -> None:
        token = AuthToken(bearer_value="t", auth_header="bearer t", expires_at=100.0)
        assert token.valid_at(50.0) is True
        assert token.valid_at(100.0) is False

    def test_token_refresh_point(self) -> None:
        token = AuthToken(
            bearer_value="t", auth_header="bearer t", expires_at=100.0, refresh_at=40.0,
        )
        assert token.valid_at(39.0) is True
        assert token.valid_at(40.0) is False

    def test_credential_pair(self) -> None:
        cred = Credential(mode=AuthType.BASIC, username="user", password="password")  # type: ignore[arg-type]
        assert cred.pair == ("user", "password")


class TestOutcome:
    def test_constructors(self) -> None:
        assert Outcome.ignored().kind == OutcomeKind.IGNORED
        skipped = Outcome.skipped(SkipReason.MELTDOWN)
        assert skipped.kind == OutcomeKind.SKIPPED
        assert skipped.reason == SkipReason.MELTDOWN
        assert Outcome.sent(500).status_code == 500
        assert Outcome.failed("boom").error == "boom"


class TestEscalationAlert:
    def test_defaults(self) -> None:
        esc = EscalationAlert(severity=1, title="t", summary="s", deployment="d")
        assert esc.source == "HM plugin resurrector"
        assert isinstance(esc.created_at, int)
