"""Shared test fixtures."""

from __future__ import annotations

import asyncio
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest

from prober.core.contracts import Prober
from prober.core.probe import Probe, ProbeRunner
from prober.core.records import OutcomeLog, Record


class FakeProber(Prober):
    """Scriptable async prober.

    ``outcomes`` is consumed one per probe() call: None passes, an exception
    is raised. Once exhausted every call passes.
    """

    def __init__(
        self,
        outcomes: list[BaseException | None] | None = None,
        alert_error: Exception | None = None,
        hang_for: float = 0.0,
    ) -> None:
        self.outcomes = list(outcomes or [])
        self.alert_error = alert_error
        self.hang_for = hang_for
        self.probe_calls = 0
        self.alerts: list[tuple[str, str, int, list[Record]]] = []

    async def probe(self) -> None:
        self.probe_calls += 1
        if self.hang_for:
            await asyncio.sleep(self.hang_for)
        outcome = self.outcomes.pop(0) if self.outcomes else None
        if outcome is not None:
            raise outcome

    async def alert(self, name: str, description: str, badness: int, records: list[Record]) -> None:
        self.alerts.append((name, description, badness, list(records)))
        if self.alert_error is not None:
            raise self.alert_error


@pytest.fixture
def outcome_log(tmp_path: Path) -> Generator[OutcomeLog, None, None]:
    """An opened outcome log in a temp dir."""
    with OutcomeLog(tmp_path / "prober.outcomes.log") as log:
        yield log


@pytest.fixture
def make_runner(outcome_log: OutcomeLog):
    """Factory: make_runner(prober, **runner_kwargs) -> ProbeRunner for probe 'p'."""

    def _make(prober: Prober | None = None, probe_kwargs: dict[str, Any] | None = None, **kwargs: Any) -> ProbeRunner:
        probe = Probe(prober or FakeProber(), "p", "test probe", **(probe_kwargs or {}))
        return ProbeRunner(probe, outcome_log, **kwargs)

    return _make
