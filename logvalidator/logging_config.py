"""
Logging configuration for log-validator.

Provides structured JSON logging to stdout and, optionally, to the local
syslog daemon. Levels in the configuration are syslog severities, mapped
onto the stdlib logging levels here.
"""

import json
import logging
import logging.handlers
import os
import sys
import time
from typing import Any, Optional

from .config import JSON_LOGS, SyslogConfig

# Syslog severity -> logging level
SYSLOG_TO_LOGGING = {
    0: logging.CRITICAL,  # emerg
    1: logging.CRITICAL,  # alert
    2: logging.CRITICAL,  # crit
    3: logging.ERROR,
    4: logging.WARNING,
    5: logging.INFO,      # notice
    6: logging.INFO,
    7: logging.DEBUG,
}

SYSLOG_SOCKET = "/dev/log"


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    One JSON object per record, suitable for syslog collectors and log
    shippers.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": time.strftime('%Y-%m-%dT%H:%M:%SZ', time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, 'extra_fields'):
            log_data.update(record.extra_fields)

        return json.dumps(log_data)


def syslog_level(severity: int) -> Optional[int]:
    """Map a syslog severity to a logging level. None disables the sink."""
    if severity < 0:
        return None
    return SYSLOG_TO_LOGGING[min(severity, 7)]


def configure_logging(
    syslog_config: Optional[SyslogConfig] = None,
    json_format: bool = JSON_LOGS,
) -> logging.Logger:
    """
    Configure logging for the process.

    Args:
        syslog_config: Log transport levels (defaults when omitted)
        json_format: Use JSON formatting

    Returns:
        The package root logger
    """
    syslog_config = syslog_config or SyslogConfig()
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if json_format:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    levels = []

    stdout_level = syslog_level(syslog_config.stdout_level)
    if stdout_level is not None:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(stdout_level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)
        levels.append(stdout_level)

    sys_level = syslog_level(syslog_config.syslog_level)
    if sys_level is not None:
        if os.path.exists(SYSLOG_SOCKET):
            address: Any = SYSLOG_SOCKET
        else:
            address = ("localhost", logging.handlers.SYSLOG_UDP_PORT)
        syslog_handler = logging.handlers.SysLogHandler(address=address)
        syslog_handler.setLevel(sys_level)
        syslog_handler.setFormatter(formatter)
        root_logger.addHandler(syslog_handler)
        levels.append(sys_level)

    if not levels:
        root_logger.addHandler(logging.NullHandler())
    root_logger.setLevel(min(levels) if levels else logging.CRITICAL)

    return logging.getLogger("logvalidator")


class WatcherLogAdapter:
    """
    Logging capability handed to each FileWatcher.

    A watcher only needs info, error and fatal. Fatal is logged at ERROR
    and never terminates the process; the watcher decides what to do next.
    """

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    def _log(self, level: int, msg: str, args: tuple, path: Optional[str]) -> None:
        if not self._logger.isEnabledFor(level):
            return
        record = self._logger.makeRecord(
            self._logger.name, level, "", 0, msg, args, None
        )
        if path is not None:
            record.extra_fields = {"filename": path}
        self._logger.handle(record)

    def info(self, msg: str, *args: Any, path: Optional[str] = None) -> None:
        self._log(logging.INFO, msg, args, path)

    def error(self, msg: str, *args: Any, path: Optional[str] = None) -> None:
        self._log(logging.ERROR, msg, args, path)

    def fatal(self, msg: str, *args: Any, path: Optional[str] = None) -> None:
        self._log(logging.ERROR, msg, args, path)
