"""
Unified error handling for burnwatch.

Evaluation errors (insufficient data, out-of-order samples) are recovered
locally by the engine. Configuration errors stop the offending SLO from
being loaded. CLI commands map every error to an exit code.

Exit Codes:
- 0: Success
- 1: Warning (advisory, operation succeeded with warnings)
- 2: Alerting (at least one alert fired)
- 10: Configuration error
- 12: Validation error (bad input data)
- 127: Unknown/internal error
- 130: Interrupted (SIGINT)
"""

from __future__ import annotations

import functools
import sys
from enum import IntEnum
from typing import Any, Callable, TypeVar

import structlog
from pydantic import ValidationError

logger = structlog.get_logger()


class ExitCode(IntEnum):
    """Standardized exit codes for CLI commands."""

    SUCCESS = 0
    WARNING = 1
    ALERTING = 2
    CONFIG_ERROR = 10
    VALIDATION_ERROR = 12
    UNKNOWN_ERROR = 127
    INTERRUPTED = 130


class BurnwatchError(Exception):
    """Base exception for burnwatch errors with exit code support."""

    exit_code: ExitCode = ExitCode.UNKNOWN_ERROR
    show_traceback: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(BurnwatchError):
    """Raised for malformed SLO or tier definitions."""

    exit_code = ExitCode.CONFIG_ERROR


class InsufficientDataError(BurnwatchError):
    """Raised when a window has no usable history to compute a burn rate from."""

    exit_code = ExitCode.VALIDATION_ERROR


class OutOfOrderSampleError(BurnwatchError):
    """Raised when a sample is older than the retained history of its SLO."""

    exit_code = ExitCode.VALIDATION_ERROR


class InvalidSampleError(BurnwatchError):
    """Raised when a sample violates total >= good >= 0."""

    exit_code = ExitCode.VALIDATION_ERROR


class UnknownSLOError(BurnwatchError):
    """Raised when an SLO name has not been registered."""

    exit_code = ExitCode.CONFIG_ERROR


# Return type preserved through the decorator
F = TypeVar("F", bound=Callable[..., int])


def format_error_message(error: BurnwatchError) -> str:
    """Render an error and its details as one line for the terminal."""
    msg = error.message
    if error.details:
        detail_str = ", ".join(f"{k}={v}" for k, v in error.details.items())
        msg = f"{msg} ({detail_str})"
    return msg


def _report(message: str, exit_code: ExitCode) -> int:
    print(f"burnwatch: error: {message}", file=sys.stderr)
    return exit_code


def handle_command_errors(func: F) -> F:
    """
    Turn exceptions escaping a CLI command into an exit code.

    The error goes to stderr as one line and to the structured log;
    stdout is left to the command's own output.

    - BurnwatchError: the error's exit_code
    - invalid BURNWATCH_* settings: CONFIG_ERROR
    - KeyboardInterrupt: INTERRUPTED
    - anything else: UNKNOWN_ERROR, logged with its traceback
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> int:
        try:
            return func(*args, **kwargs)
        except BurnwatchError as e:
            logger.error(
                "command_failed",
                error_type=type(e).__name__,
                error=e.message,
                exit_code=int(e.exit_code),
                **e.details,
            )
            return _report(format_error_message(e), e.exit_code)
        except ValidationError as e:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            logger.error("settings_invalid", fields=fields)
            return _report(f"invalid settings: {fields}", ExitCode.CONFIG_ERROR)
        except KeyboardInterrupt:
            logger.info("command_interrupted")
            return ExitCode.INTERRUPTED
        except Exception as e:
            logger.exception("command_crashed", error_type=type(e).__name__)
            return _report(f"unexpected {type(e).__name__}: {e}", ExitCode.UNKNOWN_ERROR)

    return wrapper  # type: ignore[return-value]
