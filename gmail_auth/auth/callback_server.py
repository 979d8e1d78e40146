"""One-shot local HTTP listener for OAuth redirects.

The listener binds its socket up front so a port conflict is detected
before the authorization URL is shown to anyone, then hands the socket to
uvicorn to serve a small starlette application on the running event loop.
"""

from __future__ import annotations

import asyncio
import errno
import logging
import socket

import uvicorn
from starlette.types import ASGIApp

from gmail_auth.utils.errors import PortConflictError

logger = logging.getLogger(__name__)

# Upper bound on waiting for in-flight requests when the listener closes
SHUTDOWN_GRACE_SECONDS = 5


class CallbackListener:
    """Serves an ASGI app on a loopback port for the lifetime of one attempt.

    Attributes:
        host: Interface the socket is bound to.
        port: Port the socket is bound to.
    """

    def __init__(self, app: ASGIApp, port: int, host: str = "localhost") -> None:
        self.host = host
        self.port = port
        self._app = app
        self._socket: socket.socket | None = None
        self._server: uvicorn.Server | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def is_serving(self) -> bool:
        return self._task is not None and not self._task.done()

    def bind(self) -> None:
        """Bind and listen on the configured port.

        Connections arriving before ``start()`` queue in the backlog.

        Raises:
            PortConflictError: If the port cannot be bound.
        """
        family = socket.AF_INET6 if ":" in self.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        # Allows rebinding while earlier connections sit in TIME_WAIT; an
        # active listener on the port still makes bind fail.
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((self.host, self.port))
            sock.listen(16)
        except OSError as e:
            sock.close()
            if e.errno == errno.EADDRINUSE or "Address already in use" in str(e):
                logger.error("OAuth callback port %d is already in use", self.port)
                raise PortConflictError(
                    f"Port {self.port} is already in use by another process.\n\n"
                    "To fix this:\n"
                    f"  1. Find the process: lsof -i :{self.port}\n"
                    "  2. Stop that process\n"
                    "  3. Try authenticating again\n\n"
                    "Or set OAUTH_PORT to use a different port.",
                    port=self.port,
                ) from e
            logger.error("Could not bind OAuth callback port %d: %s", self.port, e)
            raise PortConflictError(
                f"Could not bind OAuth callback port {self.port}: {e}",
                port=self.port,
                details={"error_type": type(e).__name__},
            ) from e

        self._socket = sock
        logger.debug("OAuth callback listener bound to %s:%d", self.host, self.port)

    async def start(self) -> None:
        """Start serving requests on the bound socket."""
        if self._socket is None:
            raise RuntimeError("CallbackListener.bind() must be called before start()")

        config = uvicorn.Config(
            self._app,
            lifespan="off",
            log_config=None,
            access_log=False,
            timeout_graceful_shutdown=SHUTDOWN_GRACE_SECONDS,
        )
        server = uvicorn.Server(config)
        self._server = server
        self._task = asyncio.create_task(server.serve(sockets=[self._socket]))

        # Closing before startup completes would skip uvicorn's shutdown
        while not server.started:
            if self._task.done():
                await self._task
                raise RuntimeError("OAuth callback listener exited during startup")
            await asyncio.sleep(0.01)
        logger.debug("OAuth callback listener serving on port %d", self.port)

    async def close(self) -> None:
        """Stop serving and release the port. Safe to call more than once."""
        if self._server is not None:
            self._server.should_exit = True
        if self._task is not None:
            try:
                await self._task
            except Exception as e:
                logger.warning("OAuth callback listener stopped with error: %s", e)
            self._task = None
        self._server = None
        if self._socket is not None:
            self._socket.close()
            self._socket = None
            logger.debug("OAuth callback listener on port %d closed", self.port)


__all__ = [
    "CallbackListener",
]
