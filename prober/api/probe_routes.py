"""API routes exposing probe state.

Endpoints:
  GET  /api/status                  — monitor summary
  GET  /api/probes                  — all probes with badness / alerting / latest record
  GET  /api/probes/{name}           — probe detail + record history (newest first)
  GET  /api/probes/{name}/failures  — failures from the last hour
  GET  /api/stream                  — SSE stream of new records
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse

from prober.core.monitor import Monitor
from prober.core.probe import Probe
from prober.core.records import Record

logger = logging.getLogger(__name__)

probe_router = APIRouter()

# ── SSE subscriber list (in-memory) ──────────────────────────────────────────

_sse_queues: list[asyncio.Queue[dict[str, Any]]] = []


def broadcast_record(probe: Probe, record: Record) -> None:
    """Push a new record to all SSE subscribers."""
    data = {
        "name": probe.name,
        "badness": probe.badness,
        "alerting": probe.alerting,
        **record.to_dict(),
    }
    for q in _sse_queues:
        try:
            q.put_nowait(data)
        except asyncio.QueueFull:
            pass  # slow consumer, drop


def _monitor(request: Request) -> Monitor:
    monitor = getattr(request.app.state, "monitor", None)
    if monitor is None:
        raise HTTPException(status_code=503, detail="Monitor not running")
    return monitor


def _probe(request: Request, name: str) -> Probe:
    probe = _monitor(request).get(name)
    if not probe:
        raise HTTPException(status_code=404, detail=f"Probe not found: {name}")
    return probe


@probe_router.get("/status")
def status(request: Request) -> dict[str, Any]:
    return {"status": "ok", "monitor": _monitor(request).status()}


@probe_router.get("/probes")
def list_probes(request: Request) -> dict[str, Any]:
    """All probes, alerting ones first."""
    probes = sorted(
        _monitor(request).probes.values(),
        key=lambda p: (not p.alerting, -p.badness, p.name),
    )
    return {"probes": [p.to_dict() for p in probes]}


@probe_router.get("/probes/{name}")
def get_probe(name: str, request: Request) -> dict[str, Any]:
    return _probe(request, name).to_dict(with_records=True)


@probe_router.get("/probes/{name}/failures")
def recent_failures(name: str, request: Request) -> dict[str, Any]:
    probe = _probe(request, name)
    failures = probe.records.recent_failures()
    return {
        "name": probe.name,
        "failures": [{**r.to_dict(), "ago": r.ago()} for r in failures],
    }


# ── SSE stream ───────────────────────────────────────────────────────────────


@probe_router.get("/stream")
async def record_stream(request: Request) -> StreamingResponse:
    """Server-Sent Events stream of probe records as they happen."""
    monitor = _monitor(request)
    queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=50)
    _sse_queues.append(queue)

    async def event_generator():
        try:
            init = [p.to_dict() for p in monitor.probes.values()]
            yield f"event: init\ndata: {json.dumps(init)}\n\n"

            while True:
                if await request.is_disconnected():
                    break
                try:
                    data = await asyncio.wait_for(queue.get(), timeout=30)
                    yield f"event: record\ndata: {json.dumps(data)}\n\n"
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
        finally:
            _sse_queues.remove(queue)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
