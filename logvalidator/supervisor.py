"""
Supervisor for service mode.

Owns one FileWatcher and one Worker per configured file and coordinates
shutdown. Startup is fail-fast: if any watcher cannot be constructed, the
ones already built are released and the error propagates, so the process
never runs with partial coverage.

Shutdown happens once. Every watcher is stopped and then cleaned up, even
if its stop reported an error. A watcher interrupted by its own shutdown
while waiting for a rotated file to reappear raises ShutdownRaceError;
that race is harmless and is suppressed here.
"""

import logging
import signal
import threading
import time
from typing import Callable, Dict, List, Optional, Sequence

from .config import DEFAULT_POLL_INTERVAL
from .errors import ShutdownRaceError, WatcherError, WatcherInitError
from .logging_config import WatcherLogAdapter
from .metrics import LineMetrics
from .watcher import FileWatcher, WatcherState
from .worker import Worker

log = logging.getLogger(__name__)

DEFAULT_JOIN_TIMEOUT = 5.0

SHUTDOWN_SIGNALS = tuple(
    s for s in (
        getattr(signal, "SIGTERM", None),
        getattr(signal, "SIGINT", None),
        getattr(signal, "SIGHUP", None),
    )
    if s is not None
)


class Supervisor:
    """Run a watcher+worker pair per file and stop them all on request."""

    def __init__(
        self,
        files: Sequence[str],
        metrics: LineMetrics,
        logger: Optional[logging.Logger] = None,
        watcher_factory: Callable[..., FileWatcher] = FileWatcher,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        join_timeout: float = DEFAULT_JOIN_TIMEOUT,
    ):
        self.files = list(files)
        self.metrics = metrics
        self._log = logger or log
        self._factory = watcher_factory
        self._poll_interval = poll_interval
        self._join_timeout = join_timeout

        self._watchers: List[FileWatcher] = []
        self._workers: List[Worker] = []
        self._lock = threading.Lock()
        self._shutdown_requested = threading.Event()
        self._shut_down = False

    @property
    def watchers(self) -> List[FileWatcher]:
        return list(self._watchers)

    def start(self) -> None:
        """
        Build every watcher, then start watchers and workers.

        Raises:
            WatcherInitError: If any watcher cannot be constructed or opened.
                Everything already started is shut down first.
        """
        adapter = WatcherLogAdapter(self._log)
        watchers: List[FileWatcher] = []
        try:
            for filename in self.files:
                watchers.append(
                    self._factory(filename, logger=adapter, poll_interval=self._poll_interval)
                )
        except WatcherInitError as e:
            self._log.error("failed to tail file: %s", e)
            for w in watchers:
                w.cleanup()
            raise

        try:
            for w in watchers:
                try:
                    w.start()
                except OSError as e:
                    raise WatcherInitError(w.filename, f"cannot open file: {e}", e) from e
                worker = Worker(w, self.metrics, self._log)
                worker.start()
                self._watchers.append(w)
                self._workers.append(worker)
                self._log.info("watching %s", w.filename)
        except WatcherInitError as e:
            self._log.error("failed to tail file: %s", e)
            self.shutdown()
            for w in watchers[len(self._watchers):]:
                w.cleanup()
            raise

    def states(self) -> Dict[str, WatcherState]:
        """Current lifecycle state of every watcher, by filename."""
        return {w.filename: w.state for w in self._watchers}

    # ---------- Shutdown ----------

    def request_shutdown(self) -> None:
        """Ask wait() to return and shut everything down."""
        self._shutdown_requested.set()

    def install_signal_handlers(self, signals: Sequence[int] = SHUTDOWN_SIGNALS) -> None:
        """Route termination signals to request_shutdown. Main thread only."""
        for sig in signals:
            signal.signal(sig, self._on_signal)

    def _on_signal(self, signum, frame) -> None:
        self._log.info("caught signal %s", signal.Signals(signum).name)
        self.request_shutdown()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until shutdown is requested, then shut down.

        Returns:
            False if the timeout elapsed first (nothing is stopped then)
        """
        if not self._shutdown_requested.wait(timeout):
            return False
        self.shutdown()
        return True

    def shutdown(self) -> None:
        """
        Stop and clean up every watcher, then wait a bounded time for the
        workers. Runs at most once and never raises.
        """
        with self._lock:
            if self._shut_down:
                return
            self._shut_down = True
        self._shutdown_requested.set()

        self._log.info("stopping %d watchers", len(self._watchers))
        for w in self._watchers:
            try:
                w.stop()
            except ShutdownRaceError as e:
                self._log.debug("ignoring shutdown race for %s: %s", w.filename, e)
            except WatcherError as e:
                self._log.warning("failed to stop tailing file %s: %s", w.filename, e)
            finally:
                w.cleanup()

        deadline = time.monotonic() + self._join_timeout
        for worker in self._workers:
            remaining = max(0.0, deadline - time.monotonic())
            if not worker.join(remaining):
                self._log.warning("worker for %s did not finish before exit", worker.filename)
        self._log.info("shutdown complete")
