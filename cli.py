"""CLI entry point for metrics-fanout-proxy."""

import asyncio
import signal
import sys
from datetime import datetime

import httpx
from pydantic import ValidationError
from rich.console import Console

from core.config import CONFIG_FILE, Config, ExporterSettings, load_config
from core.exceptions import ConfigurationError, ListenerBindError
from server import MetricExporter
from services.aggregator import MetricsAggregator
from services.fetcher import MetricsFetcher
from ui.console_log import ConsoleLogger
from ui.log_utils import CLI_LOG_FILE, clear_logs, write_cli_log

console = Console()


def main():
    """Main CLI entry point."""
    config = load_config()

    # Handle CLI arguments
    if len(sys.argv) > 1:
        arg = sys.argv[1]

        if arg == "--check":
            asyncio.run(_check(config))
            return

        if arg == "--config":
            console.print(f"[bold]Config:[/bold] {CONFIG_FILE}")
            console.print(f"[bold]Log:[/bold] {CLI_LOG_FILE}")
            return

        if arg in ("--help", "-h"):
            _print_help()
            return

        if arg == "--port":
            try:
                config = override_port(config, sys.argv[2:])
            except ConfigurationError as e:
                console.print(f"[red][ERROR][/red] {e}")
                sys.exit(1)

    if not config.upstreams:
        console.print("[yellow]Warning:[/yellow] No upstreams configured, /metrics will be empty")

    # Clear previous logs and start serving
    clear_logs()
    logger = ConsoleLogger()
    start_time = datetime.now()
    write_cli_log("STARTUP", "Exporter started", port=config.exporter.port)
    try:
        asyncio.run(_serve(config, logger))
    except ListenerBindError:
        sys.exit(1)
    finally:
        duration = datetime.now() - start_time
        write_cli_log("SHUTDOWN", "Exporter stopped", duration=str(duration))


def override_port(config: Config, values: list[str]) -> Config:
    """Return a copy of ``config`` listening on the port given after ``--port``."""
    if not values:
        raise ConfigurationError("--port requires a value")
    try:
        port = int(values[0])
    except ValueError as e:
        raise ConfigurationError(f"Invalid port: {values[0]!r}") from e
    try:
        exporter = ExporterSettings.model_validate({**config.exporter.model_dump(), "port": port})
    except ValidationError as e:
        raise ConfigurationError(f"Invalid port: {port}") from e
    return config.model_copy(update={"exporter": exporter})


async def _serve(config: Config, logger: ConsoleLogger) -> None:
    """Run the exporter until SIGINT or SIGTERM."""
    stop = asyncio.Event()

    def _request_stop() -> None:
        if not stop.is_set():
            logger.info("Shutting down MetricExporter...")
        stop.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _request_stop)

    exporter = MetricExporter(
        config.upstreams,
        config.exporter.host,
        config.exporter.port,
        logger,
        fetch_timeout=config.exporter.fetch_timeout,
        grace_period=config.exporter.shutdown_grace_period,
    )
    await exporter.run(stop)


async def _check(config: Config) -> None:
    """Scrape every upstream once and report what came back."""
    logger = ConsoleLogger(console=console)
    async with httpx.AsyncClient(timeout=config.exporter.fetch_timeout) as client:
        fetcher = MetricsFetcher(client, logger, timeout=config.exporter.fetch_timeout)
        aggregator = MetricsAggregator(config.upstreams, fetcher, logger)
        body = await aggregator.collect()
    console.print(f"[bold]Upstreams:[/bold] {len(config.upstreams)}")
    console.print(f"[bold]Collected:[/bold] {len(body)} bytes")


def _print_help():
    """Print help message."""
    help_text = """
[bold cyan]Metrics Fan-out Proxy[/bold cyan]

Serves GET /metrics as the concatenation of every configured upstream's metrics.

[bold]Usage:[/bold]
    metrics-fanout-proxy              Start the exporter
    metrics-fanout-proxy --port N     Start on port N instead of the configured one
    metrics-fanout-proxy --check      Scrape all upstreams once and report
    metrics-fanout-proxy --config     Show config and log locations
    metrics-fanout-proxy --help       Show this help

[bold]Configuration:[/bold]
    Upstreams and listen address live in ~/.config/metrics-fanout-proxy/config.json
"""
    console.print(help_text)


if __name__ == "__main__":
    main()
