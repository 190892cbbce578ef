"""Alert throttling — how often a probe may page someone."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

MAX_ALERT_FREQUENCY = timedelta(minutes=15)  # never send alerts more often than this


@dataclass(frozen=True)
class AlertThrottle:
    """Global alert policy shared by all probe runners."""

    max_frequency: timedelta = MAX_ALERT_FREQUENCY
    alerts_disabled: bool = False

    def allows(self, last_alert: datetime | None, now: datetime) -> bool:
        """Whether enough time has passed since ``last_alert`` to alert again."""
        if last_alert is None:
            return True
        return now - last_alert >= self.max_frequency

    def should_dispatch(self, last_alert: datetime | None, now: datetime) -> bool:
        return not self.alerts_disabled and self.allows(last_alert, now)
