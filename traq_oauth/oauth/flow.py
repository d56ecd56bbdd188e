"""
Authorization code flow over a loopback redirect.

Spawns the callback server, sends the user to the provider's authorize
page, waits for the code and waits for the server to stop.
"""

import asyncio
import logging
from urllib.parse import urlencode

from traq_oauth.core.channel import CodeChannel
from traq_oauth.core.domain import AuthorizationCode
from traq_oauth.core.exceptions import FlowAbortedError, FlowTimeoutError
from traq_oauth.core.ports import InterruptSignal, UrlOpener
from traq_oauth.oauth.config import CallbackServerConfig
from traq_oauth.oauth.server import CallbackServer
from traq_oauth.oauth.state import ServerState


logger = logging.getLogger(__name__)


def build_authorize_url(authorize_endpoint: str, client_id: str) -> str:
    """Authorize URL for the code flow (no PKCE, no state)."""
    separator = "&" if "?" in authorize_endpoint else "?"
    query = urlencode({"response_type": "code", "client_id": client_id})
    return f"{authorize_endpoint}{separator}{query}"


class AuthorizationFlow:
    """
    One authorization code flow through a loopback callback server.

    After a LaunchError the server keeps running; stop it with an
    interrupt or with shutdown().
    """

    def __init__(
        self,
        opener: UrlOpener,
        config: CallbackServerConfig | None = None,
        interrupt: InterruptSignal | None = None,
    ):
        self.opener = opener
        self.config = config or CallbackServerConfig()
        self._interrupt = interrupt
        self.server: CallbackServer | None = None
        self.server_task: asyncio.Task | None = None

    async def run(self, client_id: str, authorize_endpoint: str) -> AuthorizationCode:
        """
        Obtain an authorization code.

        Args:
            client_id: OAuth client ID registered with the provider
            authorize_endpoint: Provider's authorize URL

        Returns:
            The authorization code

        Raises:
            StartupError: If the callback server cannot bind
            LaunchError: If the browser cannot be opened
            FlowAbortedError: If the server stopped before a code arrived
            FlowTimeoutError: If config.code_timeout elapsed first
        """
        codes = CodeChannel(capacity=self.config.channel_capacity)
        state = ServerState(codes=codes)
        server = CallbackServer(state, self.config, interrupt=self._interrupt)

        server.bind()
        self.server = server
        self.server_task = asyncio.create_task(server.serve(), name="callback-server")

        url = build_authorize_url(authorize_endpoint, client_id)
        logger.info(
            "Opening browser for authorization",
            extra={"extra_fields": {"client_id": client_id, "port": server.port}},
        )
        await self.opener.open(url)

        code = await self._receive(codes)
        if code is None:
            await self._join_server()
            raise FlowAbortedError("channel closed unexpectedly")

        logger.info("Authorization code received")
        await self._join_server()
        return code

    async def shutdown(self) -> None:
        """Stop the callback server and wait for it to finish."""
        if self.server is None:
            return
        self.server.request_shutdown()
        await self._join_server()

    async def _receive(self, codes: CodeChannel) -> AuthorizationCode | None:
        timeout = self.config.code_timeout
        if timeout is None:
            return await codes.receive()

        try:
            return await asyncio.wait_for(codes.receive(), timeout)
        except TimeoutError:
            logger.error(f"No authorization code received within {timeout}s")
            codes.close_receiver()
            timeout_error = FlowTimeoutError(
                f"no authorization code received within {timeout}s"
            )
            try:
                await self.shutdown()
            except Exception as e:
                raise timeout_error from e
            raise timeout_error from None

    async def _join_server(self) -> None:
        if self.server_task is None:
            return
        await self.server_task
