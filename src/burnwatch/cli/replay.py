"""
CLI command for replaying recorded SLI samples through the engine.

Usage:
    burnwatch replay <config> <samples.jsonl> [--step 1m]

Each line of the samples file is a JSON object::

    {"slo": "checkout", "timestamp": "2025-01-10T12:00:00Z", "good": 990, "total": 1000}

The engine is stepped tick by tick across the samples' time range and
every alert transition is printed.

Exit codes:
    0 = no alert fired
    2 = at least one alert fired
    10 = configuration error
    12 = malformed samples file
"""

from __future__ import annotations

import argparse
import asyncio
import json
from datetime import datetime, timedelta
from pathlib import Path

import structlog
from rich.table import Table

from burnwatch.cli.ux import console, header, info, warning
from burnwatch.config.loader import load_slo_config
from burnwatch.core.errors import (
    BurnwatchError,
    ExitCode,
    InvalidSampleError,
    handle_command_errors,
)
from burnwatch.slos.engine import Engine
from burnwatch.slos.models import AlertFired, AlertTransition, SLISample, parse_duration
from burnwatch.slos.notifiers import RecordingSink

logger = structlog.get_logger()


def read_samples(path: str | Path) -> list[tuple[str, SLISample]]:
    """
    Read ``(slo_name, sample)`` pairs from a JSON-lines file, oldest first.

    Raises:
        InvalidSampleError: If a line is not a valid sample
    """
    samples = []
    with open(path) as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                data = json.loads(line)
                samples.append((str(data["slo"]), SLISample.from_dict(data)))
            except InvalidSampleError as exc:
                exc.details["line"] = line_no
                raise
            except (KeyError, TypeError, ValueError) as exc:
                raise InvalidSampleError(
                    f"Invalid sample on line {line_no}: {exc}", {"line": line_no}
                ) from exc

    samples.sort(key=lambda pair: pair[1].timestamp)
    return samples


async def replay(
    engine: Engine,
    samples: list[tuple[str, SLISample]],
    step: timedelta,
) -> list[tuple[datetime, AlertTransition]]:
    """
    Step ``engine`` across the samples' time range.

    Before each tick at ``t`` every sample with a timestamp before ``t`` is
    ingested, so each tick sees only buckets that had already started.
    """
    if not samples:
        return []

    timeline: list[tuple[datetime, AlertTransition]] = []
    now = samples[0][1].timestamp + step
    end = samples[-1][1].timestamp + step
    position = 0

    while now <= end:
        while position < len(samples) and samples[position][1].timestamp < now:
            slo_name, sample = samples[position]
            if slo_name in engine.store:
                engine.ingest(slo_name, sample)
            position += 1

        for event in await engine.tick(now):
            timeline.append((now, event))
        now += step

    await engine.drain()
    return timeline


@handle_command_errors
def replay_command(
    config: str,
    samples_file: str,
    step: str = "1m",
    output_format: str = "table",
) -> int:
    """Replay recorded samples and report the transitions they produce."""
    result = load_slo_config(config)
    if not result.slos:
        raise BurnwatchError("No valid SLOs to replay", {"config": config})
    if output_format != "json":
        for name in result.errors:
            warning(f"Skipping invalid SLO: {name}")

    samples = read_samples(samples_file)
    tick = parse_duration(step)

    sink = RecordingSink()
    engine = Engine(sink, result.slos, evaluation_interval=tick)
    timeline = asyncio.run(replay(engine, samples, tick))

    if output_format == "json":
        print(json.dumps([event.to_dict() for _, event in timeline], indent=2))
    else:
        _print_timeline(timeline, len(samples))

    logger.debug("replay_finished", ticks=engine.ticks, delivered=len(sink.events))

    if any(isinstance(event, AlertFired) for _, event in timeline):
        return ExitCode.ALERTING
    return ExitCode.SUCCESS


def _print_timeline(timeline: list[tuple[datetime, AlertTransition]], sample_count: int) -> None:
    header("Replay")
    info(f"{sample_count} sample(s) replayed")

    if not timeline:
        info("No alert transitions")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Time")
    table.add_column("SLO")
    table.add_column("Severity")
    table.add_column("Transition")
    table.add_column("Short burn", justify="right")
    table.add_column("Long burn", justify="right")

    styles = {"fired": "error", "resolved": "success", "data_gap": "warning"}
    for at, event in timeline:
        style = styles[event.kind]
        short = f"{event.short_burn:.2f}x" if isinstance(event, AlertFired) else "-"
        long = f"{event.long_burn:.2f}x" if isinstance(event, AlertFired) else "-"
        table.add_row(
            at.strftime("%Y-%m-%d %H:%M:%S"),
            event.slo_name,
            event.tier_severity,
            f"[{style}]{event.kind}[/{style}]",
            short,
            long,
        )

    console.print(table)
    console.print()


def register_replay_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the ``replay`` subcommand."""
    parser = subparsers.add_parser(
        "replay",
        help="Replay recorded SLI samples and show which alerts would fire",
        description="Exit codes: 0=no alerts, 2=alerts fired.",
    )
    parser.add_argument("config", help="Path to SLO YAML")
    parser.add_argument("samples_file", help="JSON-lines file of SLI samples")
    parser.add_argument("--step", default="1m", help="Evaluation interval (default: 1m)")
    parser.add_argument(
        "--format",
        choices=["table", "json"],
        default="table",
        help="Output format (default: table)",
    )


def handle_replay_command(args: argparse.Namespace) -> int:
    return replay_command(
        config=args.config,
        samples_file=args.samples_file,
        step=getattr(args, "step", "1m"),
        output_format=getattr(args, "format", "table"),
    )
