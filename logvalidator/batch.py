"""
Batch checker.

Validates every non-blank line of one whole file and reports each failure
with its 1-based line number. Blank lines are skipped here, unlike the
continuous path, which counts them as bad.
"""

import sys
from typing import List, Optional, TextIO, Tuple

from .validator import ValidationOutcome, validate_line


def find_invalid_lines(data: bytes) -> List[Tuple[int, ValidationOutcome]]:
    """Return (line number, outcome) for every invalid non-blank line."""
    failures = []
    text = data.decode("utf-8", "surrogateescape")
    for i, line in enumerate(text.split("\n"), 1):
        if line == "":
            continue
        outcome = validate_line(line)
        if not outcome.ok:
            failures.append((i, outcome))
    return failures


def _printable(text: str) -> str:
    return text.encode("utf-8", "backslashreplace").decode("utf-8")


def validate_file(path: str, stream: Optional[TextIO] = None) -> int:
    """
    Validate a whole file, writing one diagnostic per bad line.

    Args:
        path: File to check
        stream: Where diagnostics go (stderr by default)

    Returns:
        Number of invalid lines

    Raises:
        OSError: If the file cannot be read
    """
    if stream is None:
        stream = sys.stderr
    with open(path, "rb") as f:
        data = f.read()

    failures = find_invalid_lines(data)
    for lineno, outcome in failures:
        print(f"[line {lineno}] {outcome}: {_printable(outcome.line)}", file=stream)
    return len(failures)


def check_file(path: str, stream: Optional[TextIO] = None) -> bool:
    """True if every non-blank line in the file is valid."""
    return validate_file(path, stream) == 0
