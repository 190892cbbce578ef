"""Tests for the Monitor driver."""

from __future__ import annotations

import asyncio
from datetime import timedelta
from pathlib import Path

import pytest

from conftest import FakeProber
from prober.config import Settings
from prober.core.enablement import SelectionFilter
from prober.core.errors import OutcomeLogError, ProbeFailure
from prober.core.monitor import Monitor
from prober.core.probe import Probe
from prober.core.records import OutcomeLog


def _probe(name: str, prober: FakeProber | None = None, **kw) -> Probe:
    kw.setdefault("interval", 0.5)
    kw.setdefault("timeout", 0.02)
    return Probe(prober or FakeProber(), name, **kw)


class TestMonitor:
    def test_duplicate_names_rejected(self, outcome_log: OutcomeLog) -> None:
        with pytest.raises(ValueError, match="Duplicate"):
            Monitor([_probe("a"), _probe("a")], outcome_log)

    def test_runs_all_probes(self, outcome_log: OutcomeLog) -> None:
        failing = FakeProber(outcomes=[ProbeFailure("down")] * 100)
        monitor = Monitor([_probe("ok"), _probe("bad", failing)], outcome_log, alert_threshold=10_000)

        async def scenario() -> None:
            await monitor.start()
            assert monitor.running
            await asyncio.sleep(0.2)
            await monitor.stop()

        asyncio.run(scenario())
        ok, bad = monitor.get("ok"), monitor.get("bad")
        assert len(ok.records) >= 2
        assert all(r.passed for r in ok.records)
        assert len(bad.records) >= 2
        assert bad.badness >= 20
        assert not monitor.running
        assert len(OutcomeLog.read(outcome_log.path)) == len(ok.records) + len(bad.records)

    def test_run_forever_returns_when_all_disabled(self, outcome_log: OutcomeLog) -> None:
        monitor = Monitor(
            [_probe("a"), _probe("b")], outcome_log, enablement=SelectionFilter(only="nothing"),
        )
        asyncio.run(asyncio.wait_for(monitor.run_forever(), timeout=2))
        assert monitor.get("a").disabled
        assert monitor.get("b").disabled
        assert monitor.status()["disabled"] == 2

    def test_only_selected_probe_keeps_running(self, outcome_log: OutcomeLog) -> None:
        monitor = Monitor([_probe("a"), _probe("b")], outcome_log, enablement=SelectionFilter(only="a"))

        async def scenario() -> None:
            await monitor.start()
            await asyncio.sleep(0.1)
            await monitor.stop()

        asyncio.run(scenario())
        assert not monitor.get("a").disabled
        assert len(monitor.get("a").records) >= 1
        assert monitor.get("b").disabled
        assert len(monitor.get("b").records) == 0

    def test_outcome_log_failure_surfaces(self, outcome_log: OutcomeLog) -> None:
        monitor = Monitor([_probe("a")], outcome_log)

        async def scenario() -> None:
            await monitor.start()
            outcome_log.close()
            await monitor.wait()

        with pytest.raises(OutcomeLogError):
            asyncio.run(asyncio.wait_for(scenario(), timeout=2))

    def test_start_opens_log_and_stop_closes_it(self, tmp_path: Path) -> None:
        log = OutcomeLog(tmp_path / "out.log")
        monitor = Monitor([_probe("a")], log)

        async def scenario() -> None:
            await monitor.start()
            assert log.is_open
            await asyncio.sleep(0.05)
            await monitor.stop()

        asyncio.run(scenario())
        assert not log.is_open
        assert len(OutcomeLog.read(log.path)) >= 1

    def test_stop_leaves_caller_log_open(self, outcome_log: OutcomeLog) -> None:
        monitor = Monitor([_probe("a")], outcome_log, enablement=SelectionFilter(disabled="a"))
        asyncio.run(monitor.run_forever())
        assert outcome_log.is_open

    def test_status(self, outcome_log: OutcomeLog) -> None:
        monitor = Monitor([_probe("a")], outcome_log, alert_threshold=42)
        status = monitor.status()
        assert status["probes"] == 1
        assert status["alerting"] == 0
        assert status["alert_threshold"] == 42
        assert status["alerts_disabled"] is False
        assert status["max_alert_frequency"] == 900.0
        assert status["running"] is False


def test_from_settings(outcome_log: OutcomeLog) -> None:
    s = Settings(
        only_probes="a",
        disabled_probes="a,b",
        alert_threshold=30,
        max_alert_frequency=60,
        alerts_disabled=True,
    )
    monitor = Monitor.from_settings([_probe("a"), _probe("b")], outcome_log, s)
    assert monitor.enablement.is_enabled("a")
    assert not monitor.enablement.is_enabled("b")
    assert monitor.throttle.max_frequency == timedelta(seconds=60)
    assert monitor.throttle.alerts_disabled is True
    assert monitor.runners["a"].alert_threshold == 30
