"""Entry point for the statusboard monitor."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

import uvicorn
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from statusboard.config import ConfigError, settings
from statusboard.health.engine import ProbeOutcome, check_all, make_client
from statusboard.health.incidents import IncidentMemory
from statusboard.health.scheduler import HealthScheduler
from statusboard.health.tracker import HealthTracker
from statusboard.notifications.slack import SlackBoard
from statusboard.services.registry import load_config

console = Console()
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)
logger = logging.getLogger("statusboard")


async def _run_monitor(services_file: str) -> None:
    settings.validate_runtime()
    config = load_config(services_file)

    board = SlackBoard()
    scheduler = HealthScheduler(
        config,
        HealthTracker(threshold=settings.fail_threshold),
        IncidentMemory(),
        board=board,
    )

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, scheduler.request_stop)

    try:
        # Returns once a stop was requested and the in-flight cycle is done.
        await scheduler.run_forever()
    finally:
        await scheduler.stop()
        await board.close()


def run_monitor(services_file: str) -> None:
    """Probe on a fixed interval and keep the Slack board current."""
    console.print(Panel(f"Monitoring services from {services_file}", title="statusboard", style="bold blue"))
    asyncio.run(_run_monitor(services_file))


def run_server() -> None:
    """Start the FastAPI server; the monitor runs inside its lifespan."""
    console.print(Panel("Starting statusboard API server", style="bold green"))
    uvicorn.run(
        "statusboard.api.server:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=False,
    )


async def _probe_once(services_file: str) -> list[ProbeOutcome]:
    config = load_config(services_file)
    async with make_client(config.timeout_ms, config.concurrency) as client:
        return await check_all(client, config.services, config.concurrency, config.timeout_ms)


def run_check(services_file: str) -> int:
    """Probe every service once and print a table. No Slack involved."""
    with console.status("[bold green]Probing services..."):
        outcomes = asyncio.run(_probe_once(services_file))

    table = Table(title="Service status")
    table.add_column("Service")
    table.add_column("Env")
    table.add_column("Status")
    table.add_column("Latency", justify="right")
    table.add_column("Detail")
    for o in outcomes:
        status = "[green]up[/green]" if o.up else f"[red]{o.error}[/red]"
        table.add_row(o.service.name, o.service.env, status, f"{o.latency_ms:.0f}ms", o.message)
    console.print(table)

    down = sum(1 for o in outcomes if not o.up)
    console.print(f"\n[dim]{len(outcomes) - down} healthy / {down} down[/dim]")
    return 0 if down == 0 else 2


def main() -> None:
    parser = argparse.ArgumentParser(description="statusboard service monitor")
    parser.add_argument(
        "--services", default=None,
        help=f"Services file (default: {settings.services_file})",
    )
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("run", help="Monitor services and update the Slack board")
    sub.add_parser("serve", help="Start the API server with the monitor running")
    sub.add_parser("check", help="Probe every service once and print the result")

    args = parser.parse_args()
    services_file = args.services or settings.services_file

    try:
        if args.command == "run":
            run_monitor(services_file)
        elif args.command == "serve":
            if args.services:
                settings.services_file = args.services
            run_server()
        elif args.command == "check":
            sys.exit(run_check(services_file))
        else:
            parser.print_help()
            sys.exit(1)
    except ConfigError as e:
        logger.error("error: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
