"""
burnwatch command line entry point.

Commands:
    burnwatch validate [config]             - Validate SLO definitions
    burnwatch replay <config> <samples>     - Replay recorded samples
    burnwatch run [config]                  - Evaluate continuously from stdin

Log events go to stderr at ``BURNWATCH_LOG_LEVEL``; stdout carries only
command output.
"""

from __future__ import annotations

import argparse
import sys
from typing import Callable, Sequence

from burnwatch import __version__
from burnwatch.cli.replay import handle_replay_command, register_replay_parser
from burnwatch.cli.run import handle_run_command, register_run_parser
from burnwatch.cli.validate import handle_validate_command, register_validate_parser
from burnwatch.config.settings import get_settings
from burnwatch.core.errors import handle_command_errors
from burnwatch.logging import configure_logging

_HANDLERS = {
    "validate": handle_validate_command,
    "replay": handle_replay_command,
    "run": handle_run_command,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="burnwatch",
        description="Multi-window multi-burn-rate SLO alerting",
    )
    parser.add_argument("--version", action="version", version=f"burnwatch {__version__}")

    subparsers = parser.add_subparsers(dest="command")
    register_validate_parser(subparsers)
    register_replay_parser(subparsers)
    register_run_parser(subparsers)

    return parser


@handle_command_errors
def _dispatch(handler: Callable[[argparse.Namespace], int], args: argparse.Namespace) -> int:
    configure_logging(get_settings().log_level)
    return handler(args)


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    handler = _HANDLERS.get(args.command)
    if handler is None:
        parser.print_help()
        sys.exit(1)

    sys.exit(_dispatch(handler, args))


if __name__ == "__main__":
    main()
