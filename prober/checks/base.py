from __future__ import annotations

from prober.core.contracts import Prober
from prober.core.records import Record
from prober.notifications import AlertNotifier, get_notifier


class NotifyingProber(Prober):
    """Prober whose alerts go through the shared AlertNotifier."""

    def __init__(self, notifier: AlertNotifier | None = None) -> None:
        self._notifier = notifier

    @property
    def notifier(self) -> AlertNotifier:
        if self._notifier is None:
            self._notifier = get_notifier()
        return self._notifier

    async def alert(self, name: str, description: str, badness: int, records: list[Record]) -> None:
        await self.notifier.send_alert(name, description, badness, records)
