"""AlertTracker — sliding-window alert history with meltdown detection."""

from __future__ import annotations

import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field

from resurrector.core.config import AlertTrackerConfig
from resurrector.core.types import Alert, DeploymentState


@dataclass
class _DeploymentHistory:
    # (job, instance_id) -> last time an alert named it
    last_seen: dict[tuple[str, str], float] = field(default_factory=dict)
    # one timestamp per recorded alert, for the summary only
    alert_times: deque[float] = field(default_factory=deque)


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


class AlertTracker:
    """Records alerts per deployment and derives a :class:`DeploymentState`.

    Each deployment keeps the last time every (job, instance) pair was
    alerted on, stamped with the tracker clock. A repeated alert refreshes
    its pair instead of adding to the history, so memory grows with the
    number of distinct instances, not with alert volume. Pairs not seen for
    ``window_secs`` are evicted on every ``record`` and ignored by
    ``state_for``.

    A deployment is in meltdown when the number of distinct pairs inside the
    window exceeds ``meltdown_threshold``. The alert count in the summary is
    capped at ``max_alerts_per_deployment`` and never affects meltdown.
    """

    def __init__(
        self,
        config: AlertTrackerConfig | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config or AlertTrackerConfig()
        self._clock = clock
        self._history: dict[str, _DeploymentHistory] = {}

    @property
    def deployments(self) -> list[str]:
        """Deployments that have had at least one alert recorded."""
        return list(self._history)

    @property
    def window_secs(self) -> float:
        return self._config.window_secs

    @property
    def meltdown_threshold(self) -> int:
        return self._config.meltdown_threshold

    def record(self, alert: Alert) -> None:
        """Refresh the alert's targets in its deployment's history."""
        now = self._clock()
        history = self._history.get(alert.deployment)
        if history is None:
            history = _DeploymentHistory(
                alert_times=deque(maxlen=self._config.max_alerts_per_deployment),
            )
            self._history[alert.deployment] = history

        for target in alert.targets:
            history.last_seen[(target.job, target.instance_id)] = now
        history.alert_times.append(now)

        self._evict(history, now)

    def _evict(self, history: _DeploymentHistory, now: float) -> None:
        cutoff = now - self._config.window_secs
        expired = [key for key, seen in history.last_seen.items() if seen < cutoff]
        for key in expired:
            del history.last_seen[key]
        while history.alert_times and history.alert_times[0] < cutoff:
            history.alert_times.popleft()

    def state_for(self, deployment: str) -> DeploymentState:
        """Compute the deployment's current state. Does not mutate history."""
        history = self._history.get(deployment)
        if history is None:
            return DeploymentState(
                deployment=deployment,
                summary=f"deployment: '{deployment}'; no alerts recorded",
            )

        cutoff = self._clock() - self._config.window_secs
        instance_count = sum(1 for seen in history.last_seen.values() if seen >= cutoff)
        alert_count = sum(1 for at in history.alert_times if at >= cutoff)

        summary = (
            f"deployment: '{deployment}'; "
            f"{_plural(alert_count, 'alert')} across "
            f"{_plural(instance_count, 'instance')} "
            f"in the last {self._config.window_secs:g}s"
        )
        return DeploymentState(
            deployment=deployment,
            managed=True,
            meltdown=instance_count > self._config.meltdown_threshold,
            summary=summary,
            alert_count=alert_count,
            instance_count=instance_count,
        )
