"""Probe state and the runner that drives one probe forever.

Each cycle:
  1. check the enablement filter (a disabled probe exits for good)
  2. run ``probe()`` in the background, racing it against ``interval``
  3. feed the outcome into badness, the record log and the outcome log
  4. if badness reached the threshold and the throttle allows it,
     dispatch ``alert()`` without waiting for it

A probe call that loses the race is abandoned, not cancelled: it keeps
running until it returns on its own, and its late result is only logged.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
import time
from collections.abc import Callable
from concurrent.futures import Executor
from datetime import datetime
from typing import Any

from prober.core.badness import (
    DEFAULT_BADNESS_DEC,
    DEFAULT_BADNESS_INC,
    DEFAULT_MIN_BADNESS,
    BadnessAccumulator,
)
from prober.core.contracts import Prober
from prober.core.enablement import AllowAll, EnablementFilter
from prober.core.errors import ProbeFailure, ProbeTimeout
from prober.core.records import DEFAULT_CAPACITY, OutcomeLog, Record, RecordLog
from prober.core.throttle import AlertThrottle
from prober.timeutils import utcnow

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 61.0  # seconds
DEFAULT_ALERT_THRESHOLD = 100


class Probe:
    """Stateful representation of repeated runs of one prober."""

    def __init__(
        self,
        prober: Prober,
        name: str,
        description: str = "",
        *,
        interval: float = DEFAULT_INTERVAL,
        timeout: float | None = None,
        failure_penalty: int = DEFAULT_BADNESS_INC,
        success_reward: int = DEFAULT_BADNESS_DEC,
        min_badness: int = DEFAULT_MIN_BADNESS,
        capacity: int = DEFAULT_CAPACITY,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.prober = prober
        self.name = name
        self.description = description
        self.interval = float(interval)
        # timeout paces the next run after a completed one; defaults to interval
        self.timeout = float(timeout) if timeout is not None else self.interval
        self.accumulator = BadnessAccumulator(failure_penalty, success_reward, min_badness)
        self.records = RecordLog(capacity)
        self.alerting = False
        self.last_alert: datetime | None = None
        self.disabled = False

    @property
    def badness(self) -> int:
        return self.accumulator.value

    def to_dict(self, with_records: bool = False) -> dict[str, Any]:
        latest = self.records.latest
        d: dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "badness": self.badness,
            "alerting": self.alerting,
            "disabled": self.disabled,
            "last_alert": self.last_alert.isoformat() if self.last_alert else None,
            "interval": self.interval,
            "timeout": self.timeout,
            "record_count": len(self.records),
            "latest": _record_view(latest) if latest else None,
        }
        if with_records:
            d["records"] = [_record_view(r) for r in reversed(self.records.snapshot())]
        return d

    def __repr__(self) -> str:
        return f"Probe({self.name!r}, badness={self.badness}, alerting={self.alerting})"


def _record_view(r: Record) -> dict[str, Any]:
    d = r.to_dict()
    d["ago"] = r.ago()
    return d


class ProbeRunner:
    """Runs one probe: enablement check, timed execution, result routing."""

    def __init__(
        self,
        probe: Probe,
        outcome_log: OutcomeLog,
        *,
        enablement: EnablementFilter | None = None,
        throttle: AlertThrottle | None = None,
        alert_threshold: int = DEFAULT_ALERT_THRESHOLD,
        executor: Executor | None = None,
        on_record: Callable[[Probe, Record], Any] | None = None,
    ) -> None:
        self.probe = probe
        self.outcome_log = outcome_log
        self.enablement = enablement or AllowAll()
        self.throttle = throttle or AlertThrottle()
        self.alert_threshold = alert_threshold
        self._executor = executor  # None = loop default executor
        self.on_record = on_record  # SSE broadcast callback
        self._abandoned: set[asyncio.Future[Any]] = set()
        self._alerts: set[asyncio.Task[None]] = set()

    @property
    def abandoned_calls(self) -> int:
        """Probe calls that timed out and have not returned yet."""
        return len(self._abandoned)

    @property
    def alerts_in_flight(self) -> int:
        return len(self._alerts)

    # -- lifecycle ---------------------------------------------------------------

    async def run(self) -> None:
        """Run the probe repeatedly until the enablement filter turns it off."""
        name = self.probe.name
        logger.info("[%s] Starting..", name)
        while True:
            if not self.enablement.is_enabled(name):
                self.probe.disabled = True
                logger.info("[%s] is disabled, will now exit", name)
                return
            await self.run_once()

    async def run_once(self) -> None:
        """One probe cycle."""
        probe = self.probe
        start = time.monotonic()
        started = utcnow()
        logger.debug("[%s] Probing..", probe.name)
        call = asyncio.ensure_future(self._invoke(probe.prober.probe))
        done, _ = await asyncio.wait({call}, timeout=probe.interval)

        if call in done:
            if call.cancelled():
                error: BaseException | None = ProbeFailure(f"{probe.name} probe call was cancelled")
            else:
                error = call.exception()
            self.handle_result(error, timestamp=started)
            wait = probe.timeout - (time.monotonic() - start)
            if wait > 0:
                logger.debug("[%s] needs to sleep %.2fs more here", probe.name, wait)
                await asyncio.sleep(wait)
            return

        # Didn't finish in time for us to run the next one, report as failure.
        logger.error("[%s] Timed out", probe.name)
        self._abandon(call)
        self.handle_result(
            ProbeTimeout(f"{probe.name} timed out (with probe interval {probe.interval:.1f} sec)"),
            timestamp=started,
        )

    async def wait_alerts(self) -> None:
        """Wait for every alert dispatch started so far to finish."""
        while self._alerts:
            await asyncio.gather(*list(self._alerts), return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel outstanding alert dispatches and abandoned coroutine calls."""
        pending = list(self._alerts) + list(self._abandoned)
        for fut in pending:
            fut.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    # -- outcome handling -----------------------------------------------------

    def handle_result(self, error: BaseException | None, timestamp: datetime | None = None) -> None:
        """Route one probe outcome into badness, records and alerting.

        Must be called from the event loop; alert dispatch is scheduled on it.
        ``timestamp`` is when the cycle started; defaults to now.
        """
        probe = self.probe
        if error is not None:
            badness = probe.accumulator.fail()
            logger.error("[%s] Failed while probing, badness is now %d: %s", probe.name, badness, error)
            record = Record.failure(str(error) or type(error).__name__, timestamp)
        else:
            badness = probe.accumulator.succeed()
            logger.info("[%s] Pass, badness is now %d.", probe.name, badness)
            record = Record.success(timestamp)
        self._add_record(record)

        probe.alerting = probe.accumulator.reached(self.alert_threshold)
        if not probe.alerting:
            return

        if self.throttle.alerts_disabled:
            logger.info("[%s] would now be alerting, but alerts are suppressed", probe.name)
            return

        logger.info("[%s] is alerting", probe.name)
        now = utcnow()
        if not self.throttle.allows(probe.last_alert, now):
            logger.debug(
                "[%s] will not alert, since last alert was sent %s back",
                probe.name, now - probe.last_alert,
            )
            return
        self._dispatch_alert()

    def _add_record(self, record: Record) -> None:
        self.probe.records.add(record)
        # OutcomeLogError propagates: running without an audit trail is fatal
        self.outcome_log.append(record)
        if self.on_record:
            try:
                self.on_record(self.probe, record)
            except Exception:
                logger.exception("[%s] record callback error", self.probe.name)

    # -- alerts ---------------------------------------------------------------

    def _dispatch_alert(self) -> None:
        """Send the alert without blocking further probing.

        Several dispatches can be in flight at once if delivery is slow;
        only the first success inside the throttle window resets state.
        """
        probe = self.probe
        task = asyncio.get_running_loop().create_task(
            self._send_alert(probe.badness, probe.records.recent_failures()),
            name=f"alert-{probe.name}",
        )
        self._alerts.add(task)
        task.add_done_callback(self._alerts.discard)

    async def _send_alert(self, badness: int, failures: list[Record]) -> None:
        probe = self.probe
        try:
            await self._invoke(probe.prober.alert, probe.name, probe.description, badness, failures)
        except Exception as e:
            # badness is left alone, so the next failing cycle tries again
            logger.error("[%s] failed to alert: %s", probe.name, e)
            return

        now = utcnow()
        if not self.throttle.allows(probe.last_alert, now):
            logger.warning(
                "[%s] duplicate alert delivered %s after the previous one, not resetting",
                probe.name, now - probe.last_alert,
            )
            return
        logger.info("[%s] sent alert, resetting badness to %d", probe.name, probe.accumulator.floor)
        probe.last_alert = now
        probe.accumulator.reset()

    # -- helpers --------------------------------------------------------------

    async def _invoke(self, fn: Callable[..., Any], *args: Any) -> Any:
        if inspect.iscoroutinefunction(fn):
            return await fn(*args)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, functools.partial(fn, *args))

    def _abandon(self, call: asyncio.Future[Any]) -> None:
        self._abandoned.add(call)
        name = self.probe.name

        def _finished(fut: asyncio.Future[Any]) -> None:
            self._abandoned.discard(fut)
            if fut.cancelled():
                return
            exc = fut.exception()
            if exc is not None:
                logger.warning("[%s] abandoned probe call finished late with error: %s", name, exc)
            else:
                logger.info("[%s] abandoned probe call finished late", name)

        call.add_done_callback(_finished)
