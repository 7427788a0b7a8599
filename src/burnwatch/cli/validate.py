"""
CLI command for validating SLO configuration.

Usage:
    burnwatch validate <config>

Exit codes:
    0 = every SLO is valid
    1 = valid, with warnings
    10 = at least one SLO was rejected
"""

from __future__ import annotations

import argparse
import json

from rich.table import Table

from burnwatch.cli.ux import console, error, header, success, warning
from burnwatch.config.loader import load_slo_config
from burnwatch.core.errors import ExitCode, handle_command_errors
from burnwatch.slos.models import format_duration


@handle_command_errors
def validate_command(config: str | None = None, output_format: str = "table") -> int:
    """Load an SLO config file and report every problem found."""
    result = load_slo_config(config)

    if output_format == "json":
        print(json.dumps(result.to_dict(), indent=2))
    else:
        _print_result_table(result)

    if result.errors:
        return ExitCode.CONFIG_ERROR
    if result.warnings:
        return ExitCode.WARNING
    return ExitCode.SUCCESS


def _print_result_table(result) -> None:
    header("SLO Configuration")

    if result.slos:
        table = Table(show_header=True, header_style="bold")
        table.add_column("SLO")
        table.add_column("Target", justify="right")
        table.add_column("Severity")
        table.add_column("Short", justify="right")
        table.add_column("Long", justify="right")
        table.add_column("Threshold", justify="right")
        table.add_column("For", justify="right")

        for slo in result.slos:
            for index, tier in enumerate(slo.tiers):
                table.add_row(
                    slo.name if index == 0 else "",
                    f"{slo.target * 100:.3f}%" if index == 0 else "",
                    tier.severity,
                    format_duration(tier.short_window),
                    format_duration(tier.long_window),
                    f"{tier.threshold:g}x",
                    format_duration(tier.for_duration),
                )

        console.print(table)
        console.print()

    for name, messages in result.warnings.items():
        for message in messages:
            warning(f"{name}: {message}")

    for name, messages in result.errors.items():
        for message in messages:
            error(f"{name}: {message}")

    if not result.errors:
        success(f"{len(result.slos)} SLO(s) valid")


def register_validate_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the ``validate`` subcommand."""
    parser = subparsers.add_parser("validate", help="Validate an SLO configuration file")
    parser.add_argument("config", nargs="?", help="Path to SLO YAML (default: burnwatch.yaml)")
    parser.add_argument(
        "--format",
        choices=["table", "json"],
        default="table",
        help="Output format (default: table)",
    )


def handle_validate_command(args: argparse.Namespace) -> int:
    return validate_command(
        config=getattr(args, "config", None),
        output_format=getattr(args, "format", "table"),
    )
