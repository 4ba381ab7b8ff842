"""
Debug HTTP surface.

Serves the line counters for pull-based scraping and the watcher states
for operators. Runs uvicorn on a daemon thread so the main thread stays
free to wait for signals.
"""

import logging
import os
import socket
import threading
import time
from typing import Callable, Dict, Optional

import uvicorn
from fastapi import FastAPI, Response

from .errors import DebugServerError
from .metrics import CONTENT_TYPE, LineMetrics
from .watcher import WatcherState

log = logging.getLogger(__name__)


def create_app(
    metrics: LineMetrics,
    states: Optional[Callable[[], Dict[str, WatcherState]]] = None,
) -> FastAPI:
    app = FastAPI(title="log-validator debug")

    @app.get("/metrics")
    def scrape_metrics():
        return Response(content=metrics.render(), media_type=CONTENT_TYPE)

    @app.get("/debug/watchers")
    def watcher_states():
        current = states() if states else {}
        return {"watchers": {name: state.value for name, state in current.items()}}

    return app


def bind_listener(host: str, port: int) -> socket.socket:
    """Bind a TCP socket for the debug server. Raises OSError on failure."""
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        if os.name != "nt":
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen(128)
    except OSError:
        sock.close()
        raise
    sock.set_inheritable(True)
    return sock


class DebugServer:
    """
    uvicorn server on a background thread.

    The listening socket is bound in start(), so an address that is already
    in use fails startup instead of silently killing the server thread.
    """

    def __init__(self, app: FastAPI, host: str, port: int):
        self.host = host
        self.port = port
        self._server = uvicorn.Server(
            uvicorn.Config(app, host=host, port=port, log_level="warning")
        )
        self._sock: Optional[socket.socket] = None
        self._thread: Optional[threading.Thread] = None

    def start(self, timeout: float = 5.0) -> None:
        """
        Bind the listener and wait until uvicorn is serving on it.

        Raises:
            DebugServerError: If the address cannot be bound or the server
                does not come up within the timeout
        """
        try:
            self._sock = bind_listener(self.host, self.port)
        except OSError as e:
            raise DebugServerError(f"failed to listen on {self.host}:{self.port}: {e}") from e
        self.port = self._sock.getsockname()[1]

        self._thread = threading.Thread(
            target=self._server.run,
            kwargs={"sockets": [self._sock]},
            name="debug-server",
            daemon=True,
        )
        self._thread.start()

        deadline = time.monotonic() + timeout
        while not self._server.started:
            if not self._thread.is_alive() or time.monotonic() > deadline:
                self.stop()
                raise DebugServerError(f"debug server on {self.host}:{self.port} failed to start")
            time.sleep(0.01)
        log.info("debug server listening on %s:%d", self.host, self.port)

    def stop(self, timeout: float = 5.0) -> None:
        self._server.should_exit = True
        if self._thread is not None:
            self._thread.join(timeout)
        if self._sock is not None:
            self._sock.close()
            self._sock = None
