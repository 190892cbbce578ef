"""Tests for the FastAPI routes."""

from __future__ import annotations

import asyncio

import pytest
from fastapi.testclient import TestClient

from conftest import FakeProber
from prober.api import probe_routes
from prober.api.probe_routes import broadcast_record
from prober.api.server import create_app
from prober.core.monitor import Monitor
from prober.core.probe import Probe
from prober.core.records import OutcomeLog, Record


@pytest.fixture
def monitor(outcome_log: OutcomeLog) -> Monitor:
    quiet = Probe(FakeProber(), "WebProber_quiet", "Probes HTTP response of quiet")
    noisy = Probe(FakeProber(), "WebProber_noisy", "Probes HTTP response of noisy")
    meh = Probe(FakeProber(), "DnsProber_meh")
    for _ in range(3):
        quiet.records.add(Record.success())
    for _ in range(12):
        noisy.accumulator.fail()
        noisy.records.add(Record.failure("HTTP 500"))
    noisy.alerting = True
    meh.accumulator.fail()
    meh.records.add(Record.failure("bad A record"))
    return Monitor([quiet, noisy, meh], outcome_log)


@pytest.fixture
def client(monitor: Monitor) -> TestClient:
    # no context manager: skip the lifespan, which would load probes.yaml
    app = create_app()
    app.state.monitor = monitor
    return TestClient(app)


class TestAPIRoutes:
    def test_healthz(self, client: TestClient) -> None:
        resp = client.get("/healthz")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    def test_status(self, client: TestClient) -> None:
        resp = client.get("/api/status")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["monitor"]["probes"] == 3
        assert data["monitor"]["alerting"] == 1
        assert data["monitor"]["alert_threshold"] == 100

    def test_list_probes_alerting_first(self, client: TestClient) -> None:
        resp = client.get("/api/probes")
        assert resp.status_code == 200
        probes = resp.json()["probes"]
        assert [p["name"] for p in probes] == ["WebProber_noisy", "DnsProber_meh", "WebProber_quiet"]
        assert probes[0]["badness"] == 120
        assert probes[0]["latest"]["passed"] is False
        assert "records" not in probes[0]

    def test_probe_detail(self, client: TestClient) -> None:
        resp = client.get("/api/probes/WebProber_quiet")
        assert resp.status_code == 200
        data = resp.json()
        assert data["description"] == "Probes HTTP response of quiet"
        assert data["record_count"] == 3
        assert len(data["records"]) == 3
        assert all(r["passed"] for r in data["records"])
        assert "ago" in data["records"][0]

    def test_probe_not_found(self, client: TestClient) -> None:
        resp = client.get("/api/probes/nope")
        assert resp.status_code == 404

    def test_recent_failures(self, client: TestClient) -> None:
        resp = client.get("/api/probes/WebProber_noisy/failures")
        assert resp.status_code == 200
        failures = resp.json()["failures"]
        assert len(failures) == 12
        assert failures[0]["details"] == "HTTP 500"

    def test_no_monitor(self) -> None:
        client = TestClient(create_app())
        assert client.get("/api/status").status_code == 503
        assert client.get("/api/probes").status_code == 503
        assert client.get("/api/stream").status_code == 503


def test_broadcast_record_reaches_subscribers(monitor: Monitor) -> None:
    queue: asyncio.Queue = asyncio.Queue(maxsize=1)
    probe_routes._sse_queues.append(queue)
    try:
        probe = monitor.get("WebProber_noisy")
        broadcast_record(probe, Record.failure("HTTP 502"))
        # a full queue drops further records
        broadcast_record(probe, Record.failure("HTTP 503"))
    finally:
        probe_routes._sse_queues.remove(queue)

    data = queue.get_nowait()
    assert data["name"] == "WebProber_noisy"
    assert data["alerting"] is True
    assert data["details"] == "HTTP 502"
    assert queue.empty()
