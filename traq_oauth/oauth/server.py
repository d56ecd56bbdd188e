"""
Loopback callback server.

Builds the FastAPI app for one authorization flow and serves it with
uvicorn on a pre-bound socket. A watcher task runs the shutdown race
(interrupt vs. captured code) and asks uvicorn to exit when it resolves.
"""

import asyncio
import contextlib
import logging
import os
import socket

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from traq_oauth.core.exceptions import ProtocolError, StartupError
from traq_oauth.core.ports import InterruptSignal
from traq_oauth.core.shutdown import wait_for_shutdown
from traq_oauth.infrastructure.signals import SigintInterrupt
from traq_oauth.oauth.config import CallbackServerConfig
from traq_oauth.oauth.router import router, shutdown_router
from traq_oauth.oauth.state import ServerState


logger = logging.getLogger(__name__)


async def protocol_error_handler(request: Request, exc: ProtocolError):
    """
    Handle undecodable query strings on the callback routes.

    Returns 400 Bad Request. The exchange ends here and the flow is
    not affected.
    """
    logger.warning(
        f"Rejected request to {request.url.path}: {exc}",
        extra={"extra_fields": {"path": request.url.path}},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "status": "error",
            "message": "Failed to deserialize query string",
            "details": str(exc),
        },
    )


def create_callback_app(
    state: ServerState, config: CallbackServerConfig | None = None
) -> FastAPI:
    """
    Create the FastAPI app for one callback server.

    Args:
        state: State shared with the routes
        config: Server settings (defaults apply when omitted)

    Returns:
        Configured FastAPI app
    """
    if config is None:
        config = CallbackServerConfig()

    app = FastAPI(
        title="traQ OAuth callback",
        description="Loopback listener for the OAuth2 authorization code redirect",
        version="1.0.0",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.server_state = state
    app.add_exception_handler(ProtocolError, protocol_error_handler)

    app.include_router(router)
    if config.shutdown_route_enabled:
        app.include_router(shutdown_router)

    return app


class _UvicornServer(uvicorn.Server):
    """uvicorn server that leaves process signals to the shutdown race."""

    @contextlib.contextmanager
    def capture_signals(self):
        yield


class CallbackServer:
    """
    HTTP listener on a fixed loopback port.

    Idle (listening) -> Captured -> Draining -> Stopped. The capture route
    moves it out of Idle by notifying the shutdown signal; uvicorn drains
    in-flight requests before the listener is closed.
    """

    def __init__(
        self,
        state: ServerState,
        config: CallbackServerConfig | None = None,
        interrupt: InterruptSignal | None = None,
    ):
        self.state = state
        self.config = config or CallbackServerConfig()
        self._interrupt = interrupt or SigintInterrupt()
        self.app = create_callback_app(state, self.config)
        self._socket: socket.socket | None = None
        self._server = _UvicornServer(
            uvicorn.Config(
                self.app,
                host=self.config.host,
                port=self.config.port,
                lifespan="off",
                log_config=None,
                access_log=False,
                timeout_graceful_shutdown=self.config.graceful_shutdown_timeout,
            )
        )
        self.stopped = False

    @property
    def port(self) -> int:
        """Port actually bound (differs from config only when it asks for 0)."""
        if self._socket is None:
            return self.config.port
        return self._socket.getsockname()[1]

    @property
    def started(self) -> bool:
        return self._server.started

    def bind(self) -> socket.socket:
        """
        Bind the socket and start listening on it.

        The port is claimed here, before the server task runs, so a
        second listener on the same port fails at this point.

        Raises:
            StartupError: If the address is unavailable
        """
        if self._socket is not None:
            return self._socket

        address = (self.config.host, self.config.port)
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            if os.name != "nt":
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind(address)
            sock.listen(self._server.config.backlog)
        except OSError as e:
            sock.close()
            logger.error(f"Failed to bind callback server to {address}: {e}")
            raise StartupError(
                f"Could not bind callback server to {address[0]}:{address[1]}: {e}"
            ) from e

        self._socket = sock
        logger.info(f"Callback server bound to http://{address[0]}:{self.port}")
        return sock

    def request_shutdown(self) -> None:
        """Ask the server to stop. Repeated calls are harmless."""
        self.state.shutdown.notify()

    async def serve(self) -> None:
        """
        Serve until the shutdown race resolves, then drain and stop.

        The code channel is closed on the way out, whatever the reason,
        so a waiting flow is released.
        """
        sock = self.bind()
        watcher = asyncio.create_task(
            self._watch_shutdown(), name="callback-server-shutdown"
        )
        try:
            await self._server.serve(sockets=[sock])
        except OSError as e:
            logger.error(f"Callback server failed to start: {e}")
            raise StartupError(
                f"Could not start callback server on {self.config.host}:{self.port}: {e}"
            ) from e
        finally:
            watcher.cancel()
            (outcome,) = await asyncio.gather(watcher, return_exceptions=True)
            # uvicorn skips its own shutdown when asked to exit during startup.
            for listener in getattr(self._server, "servers", []):
                listener.close()
            self.state.release()
            sock.close()
            self._socket = None
            self.stopped = True
            logger.info("Callback server stopped")

        if isinstance(outcome, Exception):
            raise outcome

    async def _watch_shutdown(self) -> None:
        try:
            reason = await wait_for_shutdown(self.state.shutdown, self._interrupt)
            logger.info(f"Callback server draining ({reason})")
        finally:
            self._server.should_exit = True
