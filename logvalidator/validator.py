"""
Line validation.

Line format (as written by the upstream rsyslog template):

    timestamp hostname datacenter severity tag checksum message...

The checksum is the 6th space-delimited field and covers exactly the message
portion, i.e. every field after it rejoined with single spaces.

Validation is pure and holds no state, so any number of workers may call it
concurrently.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .checksum import log_line_checksum
from .errors import LineFormatError

FIELD_SEPARATOR = " "
CHECKSUM_FIELD_INDEX = 5
MIN_FIELDS = CHECKSUM_FIELD_INDEX + 1


class FailureReason(str, Enum):
    """Why a line failed validation."""
    FORMAT_ERROR = "FORMAT_ERROR"
    CHECKSUM_MISMATCH = "CHECKSUM_MISMATCH"


@dataclass(frozen=True)
class ParsedLine:
    """Fixed-position view of a log line."""
    timestamp: str
    hostname: str
    datacenter: str
    severity: str
    tag: str
    checksum: str
    message: str


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of validating a single line."""
    ok: bool
    line: str
    reason: Optional[FailureReason] = None
    expected: Optional[str] = None
    actual: Optional[str] = None

    @classmethod
    def valid(cls, line: str) -> 'ValidationOutcome':
        return cls(ok=True, line=line)

    @classmethod
    def format_error(cls, line: str) -> 'ValidationOutcome':
        return cls(ok=False, line=line, reason=FailureReason.FORMAT_ERROR)

    @classmethod
    def checksum_mismatch(cls, line: str, expected: str, actual: str) -> 'ValidationOutcome':
        return cls(
            ok=False,
            line=line,
            reason=FailureReason.CHECKSUM_MISMATCH,
            expected=expected,
            actual=actual,
        )

    @property
    def status(self) -> str:
        """Metric status label for this outcome."""
        return "ok" if self.ok else "bad"

    def __str__(self) -> str:
        if self.ok:
            return "ok"
        if self.reason == FailureReason.FORMAT_ERROR:
            return "line doesn't match expected format"
        return f"invalid checksum (expected {self.expected!r}, got {self.actual!r})"


def parse_line(text: str) -> ParsedLine:
    """
    Split a raw line into its fixed fields.

    Raises:
        LineFormatError: If the line has fewer than 6 fields
    """
    fields = text.split(FIELD_SEPARATOR)
    if len(fields) < MIN_FIELDS:
        raise LineFormatError(len(fields), MIN_FIELDS)

    return ParsedLine(
        timestamp=fields[0],
        hostname=fields[1],
        datacenter=fields[2],
        severity=fields[3],
        tag=fields[4],
        checksum=fields[CHECKSUM_FIELD_INDEX],
        message=FIELD_SEPARATOR.join(fields[CHECKSUM_FIELD_INDEX + 1:]),
    )


def validate_line(text: str) -> ValidationOutcome:
    """
    Validate the embedded checksum of one raw line.

    Never raises for malformed input; format problems come back as a
    FORMAT_ERROR outcome.
    """
    try:
        parsed = parse_line(text)
    except LineFormatError:
        return ValidationOutcome.format_error(text)

    computed = log_line_checksum(parsed.message)
    if parsed.checksum != computed:
        return ValidationOutcome.checksum_mismatch(text, expected=computed, actual=parsed.checksum)
    return ValidationOutcome.valid(text)
