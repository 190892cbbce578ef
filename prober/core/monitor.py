"""Monitor — starts one runner task per probe and supervises them.

Lifecycle:
    with OutcomeLog(path) as outcomes:
        monitor = Monitor(probes, outcomes, enablement=..., throttle=...)
        await monitor.run_forever()
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from typing import Any

from prober.config import Settings
from prober.core.enablement import AllowAll, EnablementFilter, SelectionFilter
from prober.core.probe import DEFAULT_ALERT_THRESHOLD, Probe, ProbeRunner
from prober.core.records import OutcomeLog, Record
from prober.core.throttle import AlertThrottle

logger = logging.getLogger(__name__)


class Monitor:
    """Owns the probes, their runners and the thread pool for blocking calls."""

    def __init__(
        self,
        probes: Iterable[Probe],
        outcome_log: OutcomeLog,
        *,
        enablement: EnablementFilter | None = None,
        throttle: AlertThrottle | None = None,
        alert_threshold: int = DEFAULT_ALERT_THRESHOLD,
        max_workers: int = 16,
        on_record: Callable[[Probe, Record], Any] | None = None,
    ) -> None:
        self.probes: dict[str, Probe] = {}
        for p in probes:
            if p.name in self.probes:
                raise ValueError(f"Duplicate probe name: {p.name}")
            self.probes[p.name] = p
        self.outcome_log = outcome_log
        self.enablement = enablement or AllowAll()
        self.throttle = throttle or AlertThrottle()
        self.alert_threshold = alert_threshold
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="probe")
        self.runners: dict[str, ProbeRunner] = {
            name: ProbeRunner(
                p,
                outcome_log,
                enablement=self.enablement,
                throttle=self.throttle,
                alert_threshold=alert_threshold,
                executor=self._executor,
                on_record=on_record,
            )
            for name, p in self.probes.items()
        }
        self._tasks: list[asyncio.Task[None]] = []
        self._running = False
        self._owns_log = False  # opened by start(), so closed by stop()

    @classmethod
    def from_settings(
        cls,
        probes: Iterable[Probe],
        outcome_log: OutcomeLog,
        settings: Settings,
        on_record: Callable[[Probe, Record], Any] | None = None,
    ) -> Monitor:
        return cls(
            probes,
            outcome_log,
            enablement=SelectionFilter(settings.only_probes, settings.disabled_probes),
            throttle=AlertThrottle(
                max_frequency=timedelta(seconds=settings.max_alert_frequency),
                alerts_disabled=settings.alerts_disabled,
            ),
            alert_threshold=settings.alert_threshold,
            max_workers=settings.probe_workers,
            on_record=on_record,
        )

    @property
    def running(self) -> bool:
        return self._running

    def get(self, name: str) -> Probe | None:
        return self.probes.get(name)

    async def start(self) -> None:
        """Start one task per probe."""
        if self._running:
            return
        if not self.outcome_log.is_open:
            self.outcome_log.open()
            self._owns_log = True
        self._running = True
        for name, runner in self.runners.items():
            self._tasks.append(asyncio.create_task(runner.run(), name=f"probe-{name}"))
        logger.info("Monitor started: %d probes", len(self._tasks))

    async def wait(self) -> None:
        """Block until every runner exits; re-raise the first fatal error."""
        pending = set(self._tasks)
        while pending:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_EXCEPTION)
            for task in done:
                if task.cancelled():
                    continue
                exc = task.exception()
                if exc is not None:
                    logger.critical("%s crashed: %s", task.get_name(), exc)
                    raise exc
        logger.info("All probes have exited")

    async def run_forever(self) -> None:
        await self.start()
        try:
            await self.wait()
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Cancel all runner tasks and in-flight alerts."""
        if not self._running:
            return
        self._running = False
        for task in self._tasks:
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        for runner in self.runners.values():
            await runner.aclose()
        # blocking probe calls cannot be interrupted; don't wait for them
        self._executor.shutdown(wait=False)
        if self._owns_log:
            self.outcome_log.close()
            self._owns_log = False
        logger.info("Monitor stopped")

    def status(self) -> dict[str, Any]:
        probes = list(self.probes.values())
        return {
            "running": self._running,
            "probes": len(probes),
            "alerting": sum(1 for p in probes if p.alerting),
            "disabled": sum(1 for p in probes if p.disabled),
            "abandoned_calls": sum(r.abandoned_calls for r in self.runners.values()),
            "alert_threshold": self.alert_threshold,
            "alerts_disabled": self.throttle.alerts_disabled,
            "max_alert_frequency": self.throttle.max_frequency.total_seconds(),
        }
