"""
Shared test configuration and fixtures.
"""

import asyncio

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from traq_oauth.core.channel import CodeChannel
from traq_oauth.core.exceptions import LaunchError
from traq_oauth.oauth.config import CallbackServerConfig
from traq_oauth.oauth.server import CallbackServer, create_callback_app
from traq_oauth.oauth.state import ServerState


async def wait_until_started(server: CallbackServer, timeout: float = 5.0) -> None:
    """Poll until uvicorn accepts connections on the bound socket."""
    async with asyncio.timeout(timeout):
        while not server.started:
            await asyncio.sleep(0.01)


class RecordingOpener:
    """UrlOpener that only records the URLs it was asked to open."""

    def __init__(self):
        self.urls: list[str] = []

    async def open(self, url: str) -> None:
        self.urls.append(url)


class FailingOpener:
    """UrlOpener standing in for a browser that cannot be launched."""

    def __init__(self):
        self.urls: list[str] = []

    async def open(self, url: str) -> None:
        self.urls.append(url)
        raise LaunchError("Could not launch browser: no runnable browser found")


class RedirectingOpener:
    """
    UrlOpener that plays the user and the provider.

    Instead of opening a browser it hits the flow's capture route, the
    way the provider's redirect would.
    """

    def __init__(self, code: str = "abc123", hits: int = 1):
        self.code = code
        self.hits = hits
        self.flow = None
        self.urls: list[str] = []
        self.responses: list[httpx.Response] = []
        self.task: asyncio.Task | None = None

    async def open(self, url: str) -> None:
        self.urls.append(url)
        self.task = asyncio.create_task(self._redirect())

    async def _redirect(self) -> None:
        server = self.flow.server
        await wait_until_started(server)
        url = f"http://127.0.0.1:{server.port}/_authorized"
        async with httpx.AsyncClient() as client:
            for _ in range(self.hits):
                self.responses.append(await client.get(url, params={"code": self.code}))


@pytest.fixture
def server_config():
    """Config that binds an ephemeral loopback port."""
    return CallbackServerConfig(host="127.0.0.1", port=0, graceful_shutdown_timeout=2.0)


@pytest.fixture
def code_channel():
    return CodeChannel()


@pytest.fixture
def server_state(code_channel):
    """State of a server with a flow waiting for a code."""
    return ServerState(codes=code_channel)


@pytest.fixture
def callback_app(server_state, server_config):
    return create_callback_app(server_state, server_config)


@pytest.fixture
def client(callback_app):
    """TestClient for the callback routes."""
    return TestClient(callback_app)


@pytest_asyncio.fixture
async def async_client(callback_app):
    """AsyncClient sharing the test's event loop with the routes."""
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=callback_app), base_url="http://testserver"
    ) as client:
        yield client
