"""
CLI commands for burnwatch.
"""

from burnwatch.cli.replay import replay_command
from burnwatch.cli.run import run_command
from burnwatch.cli.validate import validate_command

__all__ = [
    "replay_command",
    "run_command",
    "validate_command",
]
