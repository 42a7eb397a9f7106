from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional, TextIO

import typer

from cli.config import ConfigError, PollerConfig, load_config
from logging_config import configure_logging
from services.poller import EXIT_FAILURE, EXIT_OK, Poller
from services.scheduler import PeriodicScheduler
from services.sensor_client import SensorClient

logger = logging.getLogger(__name__)

app = typer.Typer(
    help="Poll a PurpleAir sensor's local JSON endpoint and log its readings.",
    context_settings={"help_option_names": ["-h", "--help"]},
    add_completion=False,
)


def open_data_stream(path: Optional[Path]) -> TextIO:
    """Return the timeseries destination: ``path`` opened for append, or stdout."""
    if path is None:
        return sys.stdout
    return path.open("a", encoding="utf-8")


def close_data_stream(stream: TextIO) -> int:
    if stream is sys.stdout:
        return EXIT_OK
    try:
        stream.close()
    except OSError as exc:
        logger.error("cannot close data file %s: %s", getattr(stream, "name", stream), exc)
        return EXIT_FAILURE
    return EXIT_OK


def build_poller(config: PollerConfig, data_stream: TextIO) -> Poller:
    client = SensorClient(config.hostname, timeout=config.request_timeout)
    return Poller(client=client, data_stream=data_stream, state_path=config.state_path)


@app.command()
def main(
    hostname: Optional[str] = typer.Argument(
        None,
        help="Sensor hostname or address (defaults to PURPLEAIR_HOSTNAME env).",
        show_default=False,
    ),
    period: Optional[float] = typer.Option(
        None,
        "--period",
        "-p",
        help="Seconds between polls (defaults to PURPLEAIR_PERIOD env or 60).",
    ),
    log: Optional[Path] = typer.Option(
        None,
        "--log",
        "-l",
        dir_okay=False,
        help="Append log messages to this file instead of stderr.",
    ),
    data: Optional[Path] = typer.Option(
        None,
        "--data",
        "-d",
        dir_okay=False,
        help="Append timeseries lines to this file instead of stdout.",
    ),
    state: Optional[Path] = typer.Option(
        None,
        "--state",
        "-s",
        dir_okay=False,
        help="Atomically replace this JSON file with the latest reading each cycle.",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="HTTP request timeout in seconds, 0 to wait indefinitely.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log informational messages."),
    debug: bool = typer.Option(False, "--debug", help="Log requests and raw responses."),
) -> None:
    """Poll the sensor until interrupted."""
    try:
        config = load_config(
            hostname=hostname,
            period=period,
            data_path=data,
            state_path=state,
            log_path=log,
            request_timeout=timeout,
            verbose=verbose,
            debug=debug,
        )
    except ConfigError as exc:
        raise typer.BadParameter(str(exc)) from exc

    configure_logging(
        level=config.log_level,
        log_path=str(config.log_path) if config.log_path else None,
    )
    logger.info(
        "polling %s every %ss",
        config.hostname,
        config.period,
        extra={"path": str(config.state_path) if config.state_path else None},
    )

    try:
        stream = open_data_stream(config.data_path)
    except OSError as exc:
        logger.error("cannot open data file %s: %s", config.data_path, exc)
        logger.info("exiting with status %d", EXIT_FAILURE, extra={"exit_status": EXIT_FAILURE})
        raise typer.Exit(code=EXIT_FAILURE) from exc

    try:
        status = build_poller(config, stream).run(PeriodicScheduler(config.period))
    finally:
        close_status = close_data_stream(stream)

    raise typer.Exit(code=status or close_status)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
