"""Core modules for burnwatch - centralized error definitions."""

from burnwatch.core.errors import (
    BurnwatchError,
    ConfigurationError,
    ExitCode,
    InsufficientDataError,
    InvalidSampleError,
    OutOfOrderSampleError,
    UnknownSLOError,
    format_error_message,
    handle_command_errors,
)

__all__ = [
    "ExitCode",
    "BurnwatchError",
    "ConfigurationError",
    "InsufficientDataError",
    "InvalidSampleError",
    "OutOfOrderSampleError",
    "UnknownSLOError",
    "handle_command_errors",
    "format_error_message",
]
