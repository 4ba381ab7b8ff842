"""
log-validator

Continuously verifies the integrity of structured log lines. Every line
carries a checksum of its own message; the validator recomputes it and
counts each line as ok or bad, per file.

Usage:
    from logvalidator import validate_line, log_line_checksum

    outcome = validate_line(raw_line)
    if not outcome.ok:
        print(outcome)

Service mode runs one FileWatcher + Worker per file under a Supervisor and
exposes the counts as the `log_lines_total` Prometheus counter.
"""

__version__ = "1.0.0"

from .checksum import log_line_checksum
from .errors import (
    ConfigError,
    DebugServerError,
    LineFormatError,
    LogValidatorError,
    ShutdownRaceError,
    WatcherError,
    WatcherInitError,
    WatcherRuntimeError,
)
from .validator import (
    FailureReason,
    ParsedLine,
    ValidationOutcome,
    parse_line,
    validate_line,
)
from .config import SyslogConfig, ValidatorConfig, load_config, parse_config
from .metrics import LineMetrics
from .watcher import FileWatcher, Line, WatcherState
from .worker import Worker
from .supervisor import Supervisor
from .batch import check_file, validate_file

__all__ = [
    "__version__",

    # Checksum
    "log_line_checksum",

    # Errors
    "ConfigError",
    "DebugServerError",
    "LineFormatError",
    "LogValidatorError",
    "ShutdownRaceError",
    "WatcherError",
    "WatcherInitError",
    "WatcherRuntimeError",

    # Validation
    "FailureReason",
    "ParsedLine",
    "ValidationOutcome",
    "parse_line",
    "validate_line",

    # Configuration
    "SyslogConfig",
    "ValidatorConfig",
    "load_config",
    "parse_config",

    # Service mode
    "LineMetrics",
    "FileWatcher",
    "Line",
    "WatcherState",
    "Worker",
    "Supervisor",

    # Batch mode
    "check_file",
    "validate_file",
]
