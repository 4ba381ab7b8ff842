"""
Exception hierarchy for log-validator.

Fatal startup errors (ConfigError, WatcherInitError) propagate to the CLI.
Runtime watcher errors are reported per line, and shutdown races are
suppressed by the supervisor.
"""

from typing import Optional


class LogValidatorError(Exception):
    """Base class for all log-validator errors."""


class ConfigError(LogValidatorError):
    """Raised when the configuration cannot be read or parsed."""


class LineFormatError(LogValidatorError):
    """Raised when a line has fewer fields than the wire format requires."""

    def __init__(self, field_count: int, required: int):
        self.field_count = field_count
        self.required = required
        super().__init__("line doesn't match expected format")


class WatcherError(LogValidatorError):
    """Base class for errors raised by a FileWatcher."""

    def __init__(self, path: str, message: str, cause: Optional[BaseException] = None):
        self.path = path
        self.message = message
        self.cause = cause
        super().__init__(f"{path}: {message}")


class WatcherInitError(WatcherError):
    """Raised when a watcher cannot be constructed. Fatal at startup."""


class WatcherRuntimeError(WatcherError):
    """Transient I/O error on a running watcher. Reported, not fatal."""


class ShutdownRaceError(WatcherError):
    """
    Raised by FileWatcher.stop() when the tail thread was interrupted by its
    own shutdown, typically while waiting for a rotated file to reappear.
    """


class DebugServerError(LogValidatorError):
    """Raised when the debug HTTP server cannot listen. Fatal at startup."""
