"""Shared helpers for the log-validator test suite."""

import threading
import time
from typing import Callable, List, Optional

from logvalidator import log_line_checksum

TIMESTAMP = "2026-10-18T12:00:00.000000+00:00"


def make_line(message: str, checksum: Optional[str] = None, tag: str = "app[123]:") -> str:
    """Build a wire-format line; the checksum is correct unless given."""
    if checksum is None:
        checksum = log_line_checksum(message)
    return f"{TIMESTAMP} host1 datacenter 6 {tag} {checksum} {message}"


def wait_for(predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.02) -> bool:
    """Poll predicate until it holds or the timeout elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


def append(path: str, *lines: str) -> None:
    with open(path, "a", encoding="utf-8") as f:
        for line in lines:
            f.write(line + "\n")


class Collector:
    """Drain a watcher's lines() on a background thread."""

    def __init__(self, watcher):
        self.watcher = watcher
        self.lines: List = []
        self._lock = threading.Lock()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def _run(self):
        for line in self.watcher.lines():
            with self._lock:
                self.lines.append(line)

    def texts(self) -> List[str]:
        with self._lock:
            return [l.text for l in self.lines if l.err is None]

    def errors(self) -> List:
        with self._lock:
            return [l.err for l in self.lines if l.err is not None]

    def finished(self, timeout: float = 5.0) -> bool:
        self._thread.join(timeout)
        return not self._thread.is_alive()
