"""
Metrics registry for log-validator.

A single counter vector, labeled by filename and status, shared by every
worker. prometheus_client synchronizes increments internally, so callers
need no locking.
"""

from typing import Optional

from prometheus_client import CollectorRegistry, Counter, generate_latest
from prometheus_client import CONTENT_TYPE_LATEST

STATUSES = ("ok", "bad")

CONTENT_TYPE = CONTENT_TYPE_LATEST


class LineMetrics:
    """
    Per-file, per-status line counters.

    Constructed once at startup and passed to every worker. Uses its own
    CollectorRegistry rather than the process-global default.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()
        self._lines = Counter(
            "log_lines",
            "A counter of log lines processed, with status",
            ["filename", "status"],
            registry=self.registry,
        )

    def increment(self, filename: str, status: str) -> None:
        """
        Count one processed line.

        Raises:
            ValueError: If status is not "ok" or "bad"
        """
        if status not in STATUSES:
            raise ValueError(f"unknown line status {status!r}")
        self._lines.labels(filename=filename, status=status).inc()

    def value(self, filename: str, status: str) -> float:
        """Current count for a label pair; 0 if never incremented."""
        v = self.registry.get_sample_value(
            "log_lines_total", {"filename": filename, "status": status}
        )
        return v or 0.0

    def render(self) -> bytes:
        """Prometheus text exposition of every registered metric."""
        return generate_latest(self.registry)
