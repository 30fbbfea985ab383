"""Resurrection policy — whether automatic remediation is allowed right now."""

from __future__ import annotations

from typing import Protocol

from resurrector.core.config import ResurrectionConfig, ResurrectionRule


class ResurrectionPolicy(Protocol):
    def resurrection_enabled(self, deployment: str) -> bool: ...


class StaticResurrectionPolicy:
    """Fixed on/off switch, toggled at runtime via ``enabled``."""

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled

    def resurrection_enabled(self, deployment: str) -> bool:
        return self.enabled


def _rule_applies(rule: ResurrectionRule, deployment: str) -> bool:
    if rule.include_deployments and deployment not in rule.include_deployments:
        return False
    return deployment not in rule.exclude_deployments


class RulesResurrectionPolicy:
    """Resurrection config: a global switch plus deployment-scoped rules.

    Resurrection is enabled unless the global switch is off or any rule
    with ``enabled: false`` applies to the deployment. A rule applies when
    its include list is empty or names the deployment, and its exclude list
    does not.
    """

    def __init__(self, config: ResurrectionConfig) -> None:
        self._config = config

    def update(self, config: ResurrectionConfig) -> None:
        """Swap in a new resurrection config."""
        self._config = config

    def resurrection_enabled(self, deployment: str) -> bool:
        if not self._config.enabled:
            return False
        return not any(
            not rule.enabled and _rule_applies(rule, deployment)
            for rule in self._config.rules
        )
