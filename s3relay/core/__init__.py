"""
Core infrastructure layer
"""
from .constants import *
from .exceptions import *
from .logging import setup_logging, get_logger, get_stdout_console, get_stderr_console
from .interfaces import ObjectStore, RetryPolicy, ProgressSink
from .telemetry import Telemetry, get_telemetry
from .utils import (
    parse_size,
    format_size,
    format_rate,
    format_percent,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "get_stdout_console",
    "get_stderr_console",
    "ObjectStore",
    "RetryPolicy",
    "ProgressSink",
    "Telemetry",
    "get_telemetry",
    "parse_size",
    "format_size",
    "format_rate",
    "format_percent",
]
