"""Entry point for the prober monitoring engine."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import uvicorn
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from prober.config import Settings, settings
from prober.core.errors import OutcomeLogError
from prober.core.monitor import Monitor
from prober.core.records import OutcomeLog
from prober.notifications import get_notifier
from prober.registry import ProbeCatalog

console = Console()
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)
logger = logging.getLogger(__name__)


def _outcome_log_path(s: Settings) -> Path:
    return Path(s.outcome_log_dir) / s.outcome_log_name


def run_server() -> None:
    """Start the FastAPI server (monitoring runs inside its lifespan)."""
    console.print(Panel(f"Starting prober API on {settings.api_host}:{settings.api_port}", style="bold green"))
    uvicorn.run(
        "prober.api.server:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=False,
    )


async def _monitor(s: Settings) -> None:
    probes = ProbeCatalog(s.probes_file).build(s, notifier=get_notifier())
    if not probes:
        console.print("[yellow]No probes configured — nothing to do[/yellow]")
        return
    with OutcomeLog(_outcome_log_path(s)) as outcomes:
        monitor = Monitor.from_settings(probes, outcomes, s)
        await monitor.run_forever()


def run_monitor(s: Settings) -> int:
    """Run the probes headless until interrupted or a fatal error occurs."""
    console.print(Panel(
        f"Probes: {s.probes_file}\nOutcome log: {_outcome_log_path(s)}\n"
        f"Alert threshold: {s.alert_threshold}  Alerts: {'off' if s.alerts_disabled else 'on'}",
        title="prober",
        style="bold blue",
    ))
    try:
        asyncio.run(_monitor(s))
    except OutcomeLogError as e:
        logger.critical("Outcome log failure: %s", e)
        return 1
    except KeyboardInterrupt:
        console.print("[dim]Interrupted[/dim]")
    return 0


def show_outcomes(s: Settings, limit: int) -> None:
    """Print the last ``limit`` records from the outcome log."""
    path = _outcome_log_path(s)
    records = OutcomeLog.read(path)[-limit:]
    table = Table(title=f"{path} (last {len(records)})")
    table.add_column("Time")
    table.add_column("Ago", style="dim")
    table.add_column("Result")
    table.add_column("Details", overflow="fold")
    for r in records:
        result = "[green]pass[/green]" if r.passed else "[red]FAIL[/red]"
        table.add_row(r.time_millis, r.ago(), result, r.details)
    console.print(table)


def main() -> None:
    parser = argparse.ArgumentParser(description="prober — black-box monitoring and alerting")
    sub = parser.add_subparsers(dest="command")

    # Server mode
    sub.add_parser("serve", help="Start the API server with monitoring")

    # Headless mode
    run_parser = sub.add_parser("run", help="Run probes without the API")
    run_parser.add_argument("--probes-file", help="Probe catalog (default: settings.probes_file)")
    run_parser.add_argument("--only", default=None, help="comma-separated list of the only probes to enable")
    run_parser.add_argument("--disable", default=None, help="comma-separated list of probes to disable")
    run_parser.add_argument("--no-alerts", action="store_true", help="disable alerts when probes fail too often")

    out_parser = sub.add_parser("outcomes", help="Show recent outcome log records")
    out_parser.add_argument("-n", "--limit", type=int, default=20)

    args = parser.parse_args()

    if args.command == "serve":
        run_server()
    elif args.command == "run":
        overrides = {}
        if args.probes_file:
            overrides["probes_file"] = args.probes_file
        if args.only is not None:
            overrides["only_probes"] = args.only
        if args.disable is not None:
            overrides["disabled_probes"] = args.disable
        if args.no_alerts:
            overrides["alerts_disabled"] = True
        sys.exit(run_monitor(settings.model_copy(update=overrides)))
    elif args.command == "outcomes":
        show_outcomes(settings, args.limit)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
