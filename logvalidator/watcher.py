"""
File watcher for log-validator.

Follows one growing log file and yields newly appended lines, in file order,
until explicitly stopped.

Behavior:
* missing files are tolerated (keeps polling until the file appears)
* rotation (inode change) and deletion reopen the path and read the new
  file from the beginning, or end the watcher when reopen=False
* truncation rewinds to the start of the file. It is detected by size,
  by a fingerprint of the first bytes, and by an mtime change without growth
* partial lines are buffered until their newline arrives
* transient I/O errors are emitted as error lines; the watcher keeps going

Each watcher owns one daemon tail thread and a queue. Files are opened in
binary mode so offsets stay comparable to st_size, and lines are decoded
with surrogateescape so the original bytes survive into checksumming.
"""

import logging
import os
import queue
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, BinaryIO, Iterator, Optional

from .config import DEFAULT_POLL_INTERVAL
from .errors import (
    ShutdownRaceError,
    WatcherError,
    WatcherInitError,
    WatcherRuntimeError,
)
from .logging_config import WatcherLogAdapter

READ_CHUNK_BYTES = 64 * 1024
HEAD_FINGERPRINT_BYTES = 1024
DEFAULT_STOP_TIMEOUT = 5.0

_END = object()


class WatcherState(str, Enum):
    """Lifecycle phase of a FileWatcher."""
    NOT_STARTED = "NOT_STARTED"
    WATCHING = "WATCHING"
    REOPENING = "REOPENING"
    STOPPED = "STOPPED"


@dataclass(frozen=True)
class Line:
    """One line read from a watched file, or an I/O error in its place."""
    text: str
    time: datetime
    err: Optional[WatcherRuntimeError] = None


def _now() -> datetime:
    return datetime.now(timezone.utc)


class FileWatcher:
    """
    Tail a single file.

    API:
        FileWatcher(path, logger=..., poll_interval=0.25, start_at_end=True,
                    reopen=True, stop_timeout=5.0)
        .start()
        .lines() -> iterator of Line
        .stop()     raises the tail thread's terminal error, if any
        .cleanup()  releases the file handle and ends lines()
    """

    def __init__(
        self,
        path: str,
        *,
        logger: Optional[Any] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        start_at_end: bool = True,
        must_exist: bool = False,
        reopen: bool = True,
        max_line_bytes: Optional[int] = None,
        stop_timeout: float = DEFAULT_STOP_TIMEOUT,
    ) -> None:
        if not path:
            raise WatcherInitError(str(path), "empty file path")
        if poll_interval <= 0:
            raise WatcherInitError(path, f"poll interval must be positive, got {poll_interval}")
        if max_line_bytes is not None and max_line_bytes <= 0:
            raise WatcherInitError(path, f"max line size must be positive, got {max_line_bytes}")

        p = Path(path)
        try:
            if p.is_dir():
                raise WatcherInitError(path, "path is a directory")
            if must_exist and not p.exists():
                raise WatcherInitError(path, "file does not exist")
        except OSError as e:
            raise WatcherInitError(path, f"cannot inspect file: {e}", e) from e

        self.filename = path
        self.poll_interval = float(poll_interval)
        self._path = p
        self._log = logger or WatcherLogAdapter(logging.getLogger(__name__))
        self._start_at_end = start_at_end
        self._reopen = reopen
        self._max_line_bytes = max_line_bytes
        self._stop_timeout = stop_timeout

        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._stop_event = threading.Event()
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._state = WatcherState.NOT_STARTED
        self._error: Optional[WatcherError] = None
        self._ended = False

        # Owned by the tail thread once started
        self._fh: Optional[BinaryIO] = None
        self._inode: Optional[int] = None
        self._offset = 0
        self._buffer = b""
        self._head = b""
        self._mtime_ns: Optional[int] = None
        self._seen_size = 0
        self._last_open_error: Optional[str] = None

    # ---------- State ----------

    @property
    def state(self) -> WatcherState:
        with self._lock:
            return self._state

    def _set_state(self, state: WatcherState) -> bool:
        with self._lock:
            if self._state == WatcherState.STOPPED:
                return False
            self._state = state
            return True

    # ---------- Lifecycle ----------

    def start(self) -> None:
        """
        Open the file (if present) and spawn the tail thread.

        The initial position is taken synchronously, so anything appended
        after start() returns is delivered.
        """
        with self._lock:
            if self._thread is not None or self._state == WatcherState.STOPPED:
                return

        if self._open(seek_end=self._start_at_end):
            self._set_state(WatcherState.WATCHING)
        else:
            self._set_state(WatcherState.REOPENING)

        thread = threading.Thread(
            target=self._run,
            name=f"tail:{self.filename}",
            daemon=True,
        )
        with self._lock:
            self._thread = thread
        thread.start()

    def lines(self) -> Iterator[Line]:
        """Yield lines as they are appended. Ends once the watcher is stopped."""
        while True:
            item = self._queue.get()
            if item is _END:
                # Leave the marker in place for any other consumer
                self._queue.put(_END)
                return
            yield item

    def stop(self) -> None:
        """
        Request the tail thread to stop and wait for it.

        Raises:
            ShutdownRaceError: The thread was interrupted by this stop while
                waiting for the file to be recreated
            WatcherRuntimeError: The thread had died of an unexpected error
        """
        with self._lock:
            if self._state == WatcherState.STOPPED:
                return
            self._state = WatcherState.STOPPED
            thread = self._thread

        self._stop_event.set()
        if thread is not None and thread is not threading.current_thread():
            thread.join(self._stop_timeout)
        if self._error is not None:
            raise self._error

    def cleanup(self) -> None:
        """Release the file handle and end the line sequence."""
        self._stop_event.set()
        with self._lock:
            self._state = WatcherState.STOPPED
        self._close_handle()
        self._finish()

    def _finish(self) -> None:
        with self._lock:
            if self._ended:
                return
            self._ended = True
        self._queue.put(_END)

    # ---------- Tail thread ----------

    def _run(self) -> None:
        try:
            while True:
                if self._fh is None:
                    self._wait_for_file()
                if self._stop_event.is_set():
                    break
                try:
                    if not self._check_rotation():
                        self._set_state(WatcherState.STOPPED)
                        break
                    read_any = self._fh is not None and self._read_available()
                except (OSError, ValueError) as e:
                    self._io_error(e)
                    read_any = False
                if not read_any:
                    self._stop_event.wait(self.poll_interval)
        except WatcherError as e:
            self._error = e
        except Exception as e:
            self._error = WatcherRuntimeError(self.filename, f"tail thread failed: {e}", e)
            self._log.fatal("error while tailing %s: %s", self.filename, e, path=self.filename)
        finally:
            self._close_handle()
            self._finish()

    def _io_error(self, e: Exception) -> None:
        if self._stop_event.is_set():
            raise ShutdownRaceError(self.filename, f"read interrupted by shutdown: {e}", e)
        if isinstance(e, ValueError):
            # Closed handle without a stop request is a bug, not a transient error
            raise e
        self._emit_error(WatcherRuntimeError(self.filename, f"read failed: {e}", e))

    def _wait_for_file(self) -> None:
        """Poll until the path can be opened again."""
        self._set_state(WatcherState.REOPENING)
        self._log.info("waiting for %s to appear", self.filename, path=self.filename)
        while True:
            if self._open(seek_end=False):
                self._set_state(WatcherState.WATCHING)
                self._log.info("successfully opened %s", self.filename, path=self.filename)
                return
            if self._stop_event.wait(self.poll_interval):
                raise ShutdownRaceError(
                    self.filename,
                    f"failed to detect creation of {self.filename}: watcher has been closed",
                )

    def _open(self, seek_end: bool) -> bool:
        try:
            fh = self._path.open("rb")
        except FileNotFoundError:
            return False
        except OSError as e:
            msg = str(e)
            if msg != self._last_open_error:
                self._last_open_error = msg
                self._emit_error(WatcherRuntimeError(self.filename, f"open failed: {e}", e))
            return False

        self._last_open_error = None
        try:
            info = os.fstat(fh.fileno())
            head = fh.read(min(HEAD_FINGERPRINT_BYTES, info.st_size)) if seek_end else b""
            if seek_end:
                fh.seek(0, os.SEEK_END)
            self._offset = fh.tell()
        except OSError:
            fh.close()
            raise
        self._inode = info.st_ino
        self._mtime_ns, self._seen_size = info.st_mtime_ns, info.st_size
        self._head = head
        self._buffer = b""
        with self._lock:
            if self._state == WatcherState.STOPPED:
                fh.close()
                return False
            self._fh = fh
        return True

    def _close_handle(self) -> None:
        with self._lock:
            fh, self._fh = self._fh, None
        if fh is not None:
            try:
                fh.close()
            except OSError:
                pass

    def _check_rotation(self) -> bool:
        """
        Detect deletion, replacement and truncation of the watched path.

        Returns False when the file went away and the watcher does not reopen.
        """
        try:
            info = self._path.stat()
        except FileNotFoundError:
            return self._file_gone(None)

        if self._inode is not None and info.st_ino != self._inode:
            return self._file_gone(info)

        if self._truncated(info):
            self._log.info("re-opening truncated file %s", self.filename, path=self.filename)
            self._set_state(WatcherState.REOPENING)
            self._rewind()
            self._set_state(WatcherState.WATCHING)
        self._mtime_ns, self._seen_size = info.st_mtime_ns, info.st_size
        return True

    def _file_gone(self, info: Optional[os.stat_result]) -> bool:
        """Drain and release the old handle after a deletion or rotation."""
        self._read_available()
        self._close_handle()
        if not self._reopen:
            self._log.info("stopping tail as %s no longer exists", self.filename, path=self.filename)
            return False

        self._log.info("re-opening moved/deleted file %s", self.filename, path=self.filename)
        self._set_state(WatcherState.REOPENING)
        if info is not None and self._open(seek_end=False):
            self._set_state(WatcherState.WATCHING)
            self._log.info("successfully reopened %s", self.filename, path=self.filename)
        return True

    def _truncated(self, info: os.stat_result) -> bool:
        """
        True if the file was cut back, even when it was rewritten past the
        read offset between two polls.
        """
        if info.st_size < self._offset:
            return True
        if self._offset == 0:
            return False
        # Modified without growing since the last stat: rewritten in place
        if info.st_mtime_ns != self._mtime_ns and info.st_size <= self._seen_size:
            return True
        return bool(self._head) and self._read_head(len(self._head)) != self._head

    def _rewind(self) -> None:
        self._fh.seek(0)
        self._offset = 0
        self._buffer = b""
        self._head = b""

    def _read_head(self, size: int) -> bytes:
        fh = self._fh
        if fh is None or size <= 0:
            return b""
        fh.seek(0)
        return fh.read(size)

    def _read_available(self) -> bool:
        """Read everything appended since the last read. Returns True if any."""
        fh = self._fh
        if fh is None:
            return False
        read_any = False
        fh.seek(self._offset)
        while not self._stop_event.is_set():
            chunk = fh.read(READ_CHUNK_BYTES)
            if not chunk:
                break
            read_any = True
            self._offset += len(chunk)
            self._consume(chunk)
        if read_any and len(self._head) < HEAD_FINGERPRINT_BYTES:
            self._head = self._read_head(min(HEAD_FINGERPRINT_BYTES, self._offset))
        return read_any

    def _consume(self, chunk: bytes) -> None:
        self._buffer += chunk
        *complete, self._buffer = self._buffer.split(b"\n")
        for raw in complete:
            self._emit(raw)

        limit = self._max_line_bytes
        while limit is not None and len(self._buffer) >= limit:
            self._emit(self._buffer[:limit])
            self._buffer = self._buffer[limit:]

    def _emit(self, raw: bytes) -> None:
        text = raw.decode("utf-8", "surrogateescape")
        self._queue.put(Line(text=text, time=_now()))

    def _emit_error(self, err: WatcherRuntimeError) -> None:
        self._queue.put(Line(text="", time=_now(), err=err))
