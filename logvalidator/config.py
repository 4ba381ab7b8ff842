"""
Configuration module for log-validator.

Service mode reads a JSON file into typed pydantic models. Only the
recognized fields are kept; unknown keys are ignored. Missing required
fields, malformed JSON and unreadable files all surface as ConfigError.
"""

import os
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigError

# ============================================================
# Environment Configuration
# ============================================================

# Structured JSON log output (set to 0 for plain text)
JSON_LOGS = os.getenv("LOG_VALIDATOR_JSON_LOGS", "1").lower() in ("1", "true", "yes")

# Seconds between polls of each watched file (LOG_VALIDATOR_POLL_INTERVAL overrides)
DEFAULT_POLL_INTERVAL = 0.25
POLL_INTERVAL_ENV = "LOG_VALIDATOR_POLL_INTERVAL"

# Syslog severities: 0 emerg .. 7 debug. A negative level disables the sink.
DEFAULT_STDOUT_LEVEL = 6
DEFAULT_SYSLOG_LEVEL = -1


class SyslogConfig(BaseModel):
    """Log transport settings."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    stdout_level: int = Field(default=DEFAULT_STDOUT_LEVEL, alias="stdoutLevel", ge=-1, le=7)
    syslog_level: int = Field(default=DEFAULT_SYSLOG_LEVEL, alias="syslogLevel", ge=-1, le=7)


class ValidatorConfig(BaseModel):
    """Top-level service configuration."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    syslog: SyslogConfig = Field(default_factory=SyslogConfig)
    debug_addr: str = Field(default="", alias="debugAddr")
    files: List[str]

    @field_validator("files")
    @classmethod
    def _no_empty_paths(cls, files: List[str]) -> List[str]:
        for f in files:
            if not f.strip():
                raise ValueError("file paths must not be empty")
        return files

    @field_validator("debug_addr")
    @classmethod
    def _valid_debug_addr(cls, addr: str) -> str:
        if addr:
            parse_listen_address(addr)
        return addr

    def listen_address(self) -> Optional[Tuple[str, int]]:
        """(host, port) for the debug server, or None when disabled."""
        if not self.debug_addr:
            return None
        return parse_listen_address(self.debug_addr)


def parse_listen_address(addr: str) -> Tuple[str, int]:
    """
    Parse "[host]:port" into (host, port). An empty host binds all interfaces.

    Raises:
        ValueError: If the address is malformed
    """
    host, sep, port = addr.rpartition(":")
    if not sep:
        raise ValueError(f"listen address {addr!r} must be [host]:port")
    host = host.strip("[]") or "0.0.0.0"
    try:
        port_num = int(port)
    except ValueError:
        raise ValueError(f"listen address {addr!r} has a non-numeric port") from None
    if not 0 <= port_num <= 65535:
        raise ValueError(f"listen address {addr!r} has an out-of-range port")
    return host, port_num


def env_poll_interval() -> float:
    """
    Poll interval from the environment, or the default when unset.

    Raises:
        ConfigError: If the variable is not a positive number
    """
    raw = os.getenv(POLL_INTERVAL_ENV)
    if raw is None or not raw.strip():
        return DEFAULT_POLL_INTERVAL
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{POLL_INTERVAL_ENV} must be a number, got {raw!r}") from None
    if not value > 0:
        raise ConfigError(f"{POLL_INTERVAL_ENV} must be positive, got {raw!r}")
    return value


def parse_config(raw: str) -> ValidatorConfig:
    """
    Parse configuration JSON text.

    Raises:
        ConfigError: If the text is not valid JSON or misses required fields
    """
    try:
        return ValidatorConfig.model_validate_json(raw)
    except ValidationError as e:
        raise ConfigError(f"failed to parse config file: {e}") from e


def load_config(path: str) -> ValidatorConfig:
    """
    Read and parse a configuration file.

    Raises:
        ConfigError: If the file is unreadable or invalid
    """
    if not path:
        raise ConfigError("no config file given")
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"failed to read config file {path}: {e}") from e
    return parse_config(raw)
