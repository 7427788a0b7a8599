"""
CLI command for running the evaluation loop as a service.

Usage:
    burnwatch run [config]

SLI samples are read as JSON lines from stdin (same format as
``burnwatch replay``) by a collector thread while the evaluation loop
ticks every ``BURNWATCH_EVALUATION_INTERVAL_SECONDS``. Transitions go to
the structured log and to Slack/PagerDuty when configured. SIGINT or
SIGTERM finishes the tick in flight and stops.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import signal
import sys
import threading
from datetime import timedelta
from typing import TextIO

import structlog

from burnwatch.config.loader import load_slo_config
from burnwatch.config.settings import Settings, get_settings
from burnwatch.core.errors import BurnwatchError, ExitCode, handle_command_errors
from burnwatch.slos.engine import Engine
from burnwatch.slos.models import SLISample
from burnwatch.slos.notifiers import build_sink
from burnwatch.slos.store import DuplicatePolicy

logger = structlog.get_logger()


def build_engine(settings: Settings, config: str | None = None) -> Engine:
    """Create an engine for every valid SLO in the config file."""
    result = load_slo_config(config or settings.config_path)
    if not result.slos:
        raise BurnwatchError("No valid SLOs to evaluate", {"errors": result.errors})

    sink = build_sink(
        slack_webhook_url=settings.slack_webhook_url,
        pagerduty_routing_key=settings.pagerduty_routing_key,
        timeout=settings.notification_timeout,
    )
    return Engine(
        sink,
        result.slos,
        evaluation_interval=timedelta(seconds=settings.evaluation_interval_seconds),
        bucket_interval=timedelta(seconds=settings.bucket_seconds),
        duplicate_policy=DuplicatePolicy(settings.duplicate_policy),
    )


def collect_from_stream(engine: Engine, stream: TextIO) -> int:
    """
    Ingest JSON-lines samples from ``stream`` until EOF.

    Malformed lines are logged and skipped. Returns the number of
    samples accepted.
    """
    accepted = 0
    for line in stream:
        line = line.strip()
        if not line:
            continue
        try:
            data = json.loads(line)
            slo_name = str(data["slo"])
            sample = SLISample.from_dict(data)
            if engine.ingest(slo_name, sample):
                accepted += 1
        except BurnwatchError as exc:
            logger.warning("sample_rejected", error=exc.message, **exc.details)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("sample_malformed", error=str(exc))

    logger.info("collector_stream_closed", accepted=accepted)
    return accepted


async def serve(engine: Engine, stream: TextIO, grace_seconds: float) -> None:
    """Run the collector thread and the evaluation loop until signalled."""
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, engine.stop)

    collector = threading.Thread(
        target=collect_from_stream,
        args=(engine, stream),
        name="burnwatch-collector",
        daemon=True,
    )
    collector.start()

    await engine.run()
    await engine.drain(timeout=grace_seconds)


@handle_command_errors
def run_command(config: str | None = None) -> int:
    """Evaluate SLOs continuously from samples streamed on stdin."""
    settings = get_settings()

    engine = build_engine(settings, config)
    asyncio.run(serve(engine, sys.stdin, settings.shutdown_grace_seconds))
    return ExitCode.SUCCESS


def register_run_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the ``run`` subcommand."""
    parser = subparsers.add_parser(
        "run",
        help="Evaluate SLOs continuously from JSON-lines samples on stdin",
    )
    parser.add_argument("config", nargs="?", help="Path to SLO YAML (default: BURNWATCH_CONFIG_PATH)")


def handle_run_command(args: argparse.Namespace) -> int:
    return run_command(config=getattr(args, "config", None))
