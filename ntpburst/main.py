"""
ntpburst - Scheduled concurrent NTP query
Command line entry point: builds the schedule, runs the workers and writes
the aggregated result set.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import click

from .client.exchange import TimeExchangeClient
from .core.config import OUTPUT_FORMATS, Config
from .core.errors import ConfigError, ScheduleError
from .core.logger import get_logger, setup_logging
from .core.schedule import ScheduleSpec, build_schedule
from .fanout.aggregator import aggregate, summarize
from .fanout.coordinator import FanOutCoordinator
from .report.interpreter import SyncReport
from .report.render import render_entries

logger = get_logger("cli")


@click.command()
@click.argument('local_datetime', metavar='DATETIME')
@click.argument('zone', metavar='TIMEZONE')
@click.argument('server', required=False)
@click.option('--config', '-c', type=click.Path(dir_okay=False), default=None,
              help='Configuration file path')
@click.option('--workers', '-w', type=click.IntRange(min=1), default=None,
              help='Number of concurrent workers (default: CPU count)')
@click.option('--timeout', '-t', type=click.FloatRange(min=0, min_open=True), default=None,
              help='Per-exchange timeout in seconds')
@click.option('--completion-timeout', type=click.FloatRange(min=0), default=None,
              help='Stop waiting for workers after this many seconds (0 waits for all)')
@click.option('--format', '-f', 'output_format', type=click.Choice(OUTPUT_FORMATS), default=None,
              help='Output format')
@click.option('--output', '-o', type=click.Path(dir_okay=False), default=None,
              help='Write results to this file instead of stdout')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
def main(local_datetime: str, zone: str, server: Optional[str], config: Optional[str],
         workers: Optional[int], timeout: Optional[float], completion_timeout: Optional[float],
         output_format: Optional[str], output: Optional[str], verbose: bool):
    """Query an NTP server from many workers at DATETIME in TIMEZONE.

    DATETIME is a local ISO date-time such as 2024-03-28T07:28:00 and TIMEZONE
    an IANA zone name such as Asia/Kolkata. SERVER defaults to the configured
    [ntp] server.
    """
    try:
        cfg = load_config(config)
        apply_overrides(cfg, server, workers, timeout, completion_timeout, output_format, output)

        log_level = logging.DEBUG if verbose else getattr(logging, cfg.logging.level.upper())
        setup_logging(cfg.logging, log_level)

        schedule = build_schedule(
            local_datetime,
            zone,
            server=cfg.ntp.server,
            worker_count=cfg.fanout.worker_count(),
            port=cfg.ntp.port,
            exchange_timeout=cfg.ntp.timeout,
            ntp_version=cfg.ntp.version,
        )
    except (ConfigError, ScheduleError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    try:
        entries, reports = run_workers(cfg, schedule)
        write_output(cfg, entries, reports)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        if verbose:
            logger.exception("Full traceback:")
        sys.exit(1)


def load_config(path: Optional[str]) -> Config:
    """Load the configuration file, or defaults when none is given."""
    if path is None:
        return Config.default()

    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"Configuration file {path} not found")
    return Config.from_file(config_path)


def apply_overrides(cfg: Config, server: Optional[str], workers: Optional[int],
                    timeout: Optional[float], completion_timeout: Optional[float],
                    output_format: Optional[str], output: Optional[str]) -> None:
    """Let command line options take precedence over the configuration file."""
    if server:
        cfg.ntp.server = server
    if workers is not None:
        cfg.fanout.workers = workers
    if timeout is not None:
        cfg.ntp.timeout = timeout
    if completion_timeout is not None:
        cfg.fanout.completion_timeout = completion_timeout
    if output_format is not None:
        cfg.output.format = output_format
    if output is not None:
        cfg.output.file = output
    cfg.validate()


def run_workers(cfg: Config, schedule: ScheduleSpec) -> Tuple[List[Dict[str, Any]], Dict[int, SyncReport]]:
    """Run every worker and aggregate their outcomes."""
    client = TimeExchangeClient(
        port=schedule.port,
        version=schedule.ntp_version,
        timeout=schedule.exchange_timeout,
    )
    coordinator = FanOutCoordinator(client, completion_timeout=cfg.fanout.deadline())
    outcomes = coordinator.run(schedule)

    entries = aggregate(outcomes)
    summary = summarize(entries)
    logger.info(
        f"{summary['ok']} of {summary['total']} workers succeeded, "
        f"{summary['failed']} failed, {summary['incomplete']} incomplete"
    )

    reports = {
        outcome.index: outcome.report
        for outcome in outcomes
        if outcome is not None and outcome.ok
    }
    return entries, reports


def write_output(cfg: Config, entries: List[Dict[str, Any]], reports: Dict[int, SyncReport]) -> None:
    """Serialize the result set to stdout or the configured file."""
    if cfg.output.format == "text":
        text = render_entries(entries, reports)
    else:
        text = json.dumps(entries, indent=cfg.output.indent or None)

    if cfg.output.file:
        output_path = Path(cfg.output.file)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(text + "\n", encoding="utf-8")
        logger.info(f"Results written to {output_path}")
    else:
        click.echo(text)


if __name__ == '__main__':
    main()
