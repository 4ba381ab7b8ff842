"""
Per-file worker.

Consumes one watcher's line sequence, validates each line and records the
outcome. Validation failures never escape the worker: they become a "bad"
count plus an error log entry.
"""

import logging
import threading
from typing import Optional

from .metrics import LineMetrics
from .validator import validate_line
from .watcher import FileWatcher

log = logging.getLogger(__name__)


class Worker:
    """Validate every line a FileWatcher produces, in file order."""

    def __init__(
        self,
        watcher: FileWatcher,
        metrics: LineMetrics,
        logger: Optional[logging.Logger] = None,
    ):
        self.watcher = watcher
        self.metrics = metrics
        self._log = logger or log
        self._thread: Optional[threading.Thread] = None

    @property
    def filename(self) -> str:
        return self.watcher.filename

    def start(self) -> None:
        """Run the worker on its own daemon thread."""
        self._thread = threading.Thread(
            target=self.run,
            name=f"worker:{self.filename}",
            daemon=True,
        )
        self._thread.start()

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the worker to finish. Returns True if it has."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def run(self) -> None:
        """Process lines until the watcher's sequence ends."""
        for line in self.watcher.lines():
            if line.err is not None:
                self._log.error("error while tailing %s: %s", self.filename, line.err)
                continue
            self.process(line.text)

    def process(self, text: str) -> bool:
        """Validate one line and record it. Returns True if the line is valid."""
        outcome = validate_line(text)
        self.metrics.increment(self.filename, outcome.status)
        if not outcome.ok:
            self._log.error("%s: %s %r", self.filename, outcome, text)
        return outcome.ok
