"""Core module — config, types, logging."""

from resurrector.core.config import Settings, get_settings, load_settings, reset_settings
from resurrector.core.logging import setup_logging
from resurrector.core.types import (
    Alert,
    AlertTarget,
    AuthMode,
    AuthToken,
    AuthType,
    Credential,
    DeploymentState,
    EndpointStatus,
    EscalationAlert,
    Outcome,
    OutcomeKind,
    RemediationRequest,
    SkipReason,
)

__all__ = [
    "Alert",
    "AlertTarget",
    "AuthMode",
    "AuthToken",
    "AuthType",
    "Credential",
    "DeploymentState",
    "EndpointStatus",
    "EscalationAlert",
    "Outcome",
    "OutcomeKind",
    "RemediationRequest",
    "Settings",
    "SkipReason",
    "get_settings",
    "load_settings",
    "reset_settings",
    "setup_logging",
]
