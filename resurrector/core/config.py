"""Pydantic settings loaded from YAML configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, SecretStr

_settings: Settings | None = None

_DEFAULT_CONFIG_PATH = Path("config/settings.yaml")


class DirectorConfig(BaseModel):
    """Remote orchestration API (director) connection and credentials."""

    endpoint: str = "https://127.0.0.1:25555"
    user: str = ""
    password: SecretStr = SecretStr("")
    client_id: str = ""
    client_secret: SecretStr = SecretStr("")
    ca_cert: str = ""
    request_timeout_secs: float = 10.0
    status_timeout_secs: float = 5.0
    status_poll_interval_secs: float = 60.0
    token_expiry_margin_secs: float = 60.0


class AlertTrackerConfig(BaseModel):
    """Sliding-window alert aggregation and meltdown detection."""

    window_secs: float = 600.0
    meltdown_threshold: int = 5
    max_alerts_per_deployment: int = 1000


class ResurrectionRule(BaseModel):
    """A single resurrection rule scoped by deployment include/exclude lists."""

    enabled: bool = True
    include_deployments: list[str] = Field(default_factory=list)
    exclude_deployments: list[str] = Field(default_factory=list)


class ResurrectionConfig(BaseModel):
    """Global resurrection switch plus per-deployment rules."""

    enabled: bool = True
    rules: list[ResurrectionRule] = Field(default_factory=list)


class WebhookConfig(BaseModel):
    """JSON webhook receiving escalation alerts."""

    enabled: bool = False
    url: SecretStr = SecretStr("")
    timeout_secs: float = 10.0


class NotificationsConfig(BaseModel):
    """Where escalation alerts are delivered."""

    log_escalations: bool = True
    webhook: WebhookConfig = WebhookConfig()


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"
    decision_log_path: str = ""


class Settings(BaseModel):
    """Root settings container."""

    director: DirectorConfig = DirectorConfig()
    alert_tracker: AlertTrackerConfig = AlertTrackerConfig()
    resurrection: ResurrectionConfig = ResurrectionConfig()
    notifications: NotificationsConfig = NotificationsConfig()
    logging: LoggingConfig = LoggingConfig()


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from a YAML file and cache globally.

    Args:
        path: Path to YAML config. Defaults to config/settings.yaml.

    Returns:
        Parsed Settings instance.
    """
    global _settings  # noqa: PLW0603

    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f)
            if isinstance(raw, dict):
                data = raw

    _settings = Settings(**data)
    return _settings


def get_settings() -> Settings:
    """Return the cached settings, loading defaults if not yet loaded."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Reset the cached settings (useful for testing)."""
    global _settings  # noqa: PLW0603
    _settings = None
