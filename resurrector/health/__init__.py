"""Deployment health tracking and the resurrection control loop."""

from resurrector.health.alert_tracker import AlertTracker
from resurrector.health.controller import ResurrectorController
from resurrector.health.policy import (
    ResurrectionPolicy,
    RulesResurrectionPolicy,
    StaticResurrectionPolicy,
)

__all__ = [
    "AlertTracker",
    "ResurrectionPolicy",
    "ResurrectorController",
    "RulesResurrectionPolicy",
    "StaticResurrectionPolicy",
]
