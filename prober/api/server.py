"""FastAPI server exposing the monitor's state."""

from __future__ import annotations

import asyncio
import logging
import signal
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from prober.api.probe_routes import broadcast_record, probe_router
from prober.config import settings
from prober.core.monitor import Monitor
from prober.core.records import OutcomeLog
from prober.notifications import get_notifier
from prober.registry import ProbeCatalog

logger = logging.getLogger(__name__)


async def _supervise(monitor: Monitor) -> None:
    """Stop the whole server if a runner hits a fatal error."""
    try:
        await monitor.wait()
    except asyncio.CancelledError:
        raise
    except Exception:
        logger.critical("Monitor failed, shutting down", exc_info=True)
        signal.raise_signal(signal.SIGTERM)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the outcome log, build probes from the catalog, start monitoring."""
    catalog = ProbeCatalog(settings.probes_file)
    probes = catalog.build(settings, notifier=get_notifier())
    app.state.catalog = catalog

    outcome_log = OutcomeLog(Path(settings.outcome_log_dir) / settings.outcome_log_name)
    with outcome_log:
        monitor = Monitor.from_settings(probes, outcome_log, settings, on_record=broadcast_record)
        app.state.monitor = monitor
        await monitor.start()
        supervisor = asyncio.create_task(_supervise(monitor), name="monitor-supervisor")

        yield

        # Shutdown
        supervisor.cancel()
        await asyncio.gather(supervisor, return_exceptions=True)
        await monitor.stop()


def create_app() -> FastAPI:
    app = FastAPI(
        title="prober - black-box monitoring",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(probe_router, prefix="/api")

    @app.get("/healthz")
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
