"""Test server that serves an ASGI application for the duration of a suite.

The server runs uvicorn in a background thread so tests in the calling
thread can drive a browser against it. It has two states:

- STOPPED: initial state, and after stop()
- RUNNING: after a successful start()
"""

from __future__ import annotations

import logging
import socket
import threading
import time
from contextlib import closing
from enum import Enum
from typing import Any, cast

import uvicorn

from browsersuite import config
from browsersuite.exceptions import ServerStartError, ServerStateError, ServerStopError

logger = logging.getLogger("browsersuite.server")

# How often start() checks whether uvicorn finished starting up
POLL_INTERVAL_SECONDS = 0.05


def find_free_port(host: str | None = None) -> int:
    """Find a port nothing is listening on, for suites that must not collide."""
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind((host or config.HOST, 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return cast(int, s.getsockname()[1])


class ServerState(str, Enum):
    """Test server lifecycle states."""

    STOPPED = "stopped"
    RUNNING = "running"


class TestServer:
    """Serves ``app`` on ``host:port`` from a background thread.

    Args:
        port: Port to listen on.
        app: ASGI application, or an import string such as ``"pkg.module:app"``.
        host: Interface to bind.
        startup_timeout: Seconds to wait for uvicorn to start serving.
        log_level: uvicorn log level.
    """

    # Not a pytest test class
    __test__ = False

    def __init__(
        self,
        port: int,
        app: Any,
        host: str | None = None,
        startup_timeout: float | None = None,
        log_level: str | None = None,
    ) -> None:
        self.port = port
        self.app = app
        self.host = host or config.HOST
        self.startup_timeout = startup_timeout or config.SERVER_STARTUP_TIMEOUT
        self.log_level = log_level or config.SERVER_LOG_LEVEL
        self.state = ServerState.STOPPED
        self._server: uvicorn.Server | None = None
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self.state is ServerState.RUNNING

    @property
    def url(self) -> str:
        """Base URL of the server."""
        return f"http://{self.host}:{self.port}"

    def start(self) -> None:
        """Start serving and wait until uvicorn accepts connections.

        Raises:
            ServerStateError: If the server is already running.
            ServerStartError: If uvicorn exits during startup (for example
                because the port is in use) or does not start in time.
        """
        if self.state is ServerState.RUNNING:
            raise ServerStateError(
                f"Test server already running on port {self.port}", port=self.port
            )

        uvicorn_config = uvicorn.Config(
            self.app,
            host=self.host,
            port=self.port,
            log_level=self.log_level,
            lifespan="auto",
        )
        server = uvicorn.Server(uvicorn_config)
        thread = threading.Thread(
            target=server.run,
            name=f"browsersuite-server-{self.port}",
            daemon=True,
        )

        logger.info("Starting test server on %s", self.url)
        thread.start()

        deadline = time.monotonic() + self.startup_timeout
        while not server.started:
            if not thread.is_alive():
                # uvicorn exits the thread when it cannot bind
                raise ServerStartError(
                    f"Test server failed to start on port {self.port}", port=self.port
                )
            if time.monotonic() > deadline:
                server.should_exit = True
                thread.join(timeout=self.startup_timeout)
                raise ServerStartError(
                    f"Test server did not start within {self.startup_timeout}s",
                    port=self.port,
                )
            time.sleep(POLL_INTERVAL_SECONDS)

        self._server = server
        self._thread = thread
        self.state = ServerState.RUNNING
        logger.info("Test server running on %s", self.url)

    def stop(self) -> None:
        """Stop serving and wait for the server thread to exit.

        Stopping a server that is not running does nothing.

        Raises:
            ServerStopError: If the server thread does not exit in time.
        """
        if self.state is ServerState.STOPPED or self._server is None or self._thread is None:
            logger.debug("Test server on port %d is not running", self.port)
            return

        logger.info("Stopping test server on %s", self.url)
        self._server.should_exit = True
        self._thread.join(timeout=self.startup_timeout)
        alive = self._thread.is_alive()

        self._server = None
        self._thread = None
        self.state = ServerState.STOPPED

        if alive:
            raise ServerStopError(
                f"Test server on port {self.port} did not stop within {self.startup_timeout}s",
                port=self.port,
            )

    def __enter__(self) -> TestServer:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def __repr__(self) -> str:
        return f"<TestServer {self.url} {self.state.value}>"
