"""
Tests for the command-line entry points.
"""

import json
import logging
import os
import socket
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from respx import MockRouter

from traq_oauth import main as cli
from traq_oauth import upload_stamp
from traq_oauth.core.exceptions import FlowAbortedError, LaunchError, StartupError
from traq_oauth.infrastructure.browser import (
    CommandUrlOpener,
    PrintUrlOpener,
    WebBrowserOpener,
)
from traq_oauth.integrations.traq.client import TraqClient
from traq_oauth.integrations.traq.config import TraqConfig, get_traq_config
from traq_oauth.oauth.config import get_callback_server_config


BASE_URL = "https://q.trap.jp/api/v3"


@pytest.fixture(autouse=True)
def reset_config_cache():
    """Config accessors are cached; every test reads its own environment."""
    get_traq_config.cache_clear()
    get_callback_server_config.cache_clear()
    yield
    get_traq_config.cache_clear()
    get_callback_server_config.cache_clear()


@pytest.fixture
def traq_config(tmp_path):
    return TraqConfig(api_base_url=BASE_URL, credential_file=str(tmp_path / "credential.json"))


@pytest.fixture
def mock_flow():
    flow = MagicMock()
    flow.run = AsyncMock(return_value="abc123")
    flow.shutdown = AsyncMock()
    return flow


def parse(argv):
    parser = cli.argparse.ArgumentParser()
    cli.add_common_arguments(parser)
    return parser.parse_args(argv)


class TestArguments:
    """Tests for argument handling."""

    def test_server_config_overrides(self):
        """Test --port and --timeout override the environment."""
        with patch.dict(os.environ, {"TRAQ_CALLBACK_PORT": "9000"}, clear=True):
            config = cli.build_server_config(parse(["--port", "9100", "--timeout", "30"]))

        assert config.port == 9100
        assert config.code_timeout == 30.0

    def test_server_config_defaults_from_env(self):
        """Test the environment is used without flags."""
        with patch.dict(os.environ, {"TRAQ_CALLBACK_PORT": "9000"}, clear=True):
            config = cli.build_server_config(parse([]))

        assert config.port == 9000
        assert config.code_timeout is None

    def test_overrides_do_not_touch_cached_config(self):
        """Test CLI overrides never mutate the shared config."""
        with patch.dict(os.environ, {}, clear=True):
            cli.build_server_config(parse(["--port", "9100"]))

            assert get_callback_server_config().port == 8080

    @pytest.mark.parametrize(
        "argv, expected",
        [
            ([], WebBrowserOpener),
            (["--browser-command", "xdg-open"], CommandUrlOpener),
            (["--no-browser"], PrintUrlOpener),
        ],
    )
    def test_build_opener(self, argv, expected):
        """Test the opener follows the browser flags."""
        assert isinstance(cli.build_opener(parse(argv)), expected)


class TestLoadClient:
    """Tests for load_client."""

    @pytest.mark.asyncio
    async def test_stored_token_skips_flow(self, traq_config, mock_flow):
        """Test a stored token is used without authorizing."""
        env = {"TRAQ_CLIENT_ID": "client-1", "TRAQ_CLIENT_TOKEN": "token-1"}
        with patch.dict(os.environ, env, clear=True):
            client = await cli.load_client(traq_config, mock_flow)

        assert client.access_token == "token-1"
        mock_flow.run.assert_not_called()

    @pytest.mark.asyncio
    async def test_authorizes_and_saves(self, traq_config, mock_flow, respx_mock: MockRouter):
        """Test a missing token runs the flow, exchanges the code and saves."""
        respx_mock.post(f"{BASE_URL}/oauth2/token").mock(
            return_value=httpx.Response(200, json={"access_token": "token-2"})
        )

        with patch.dict(os.environ, {"TRAQ_CLIENT_ID": "client-1"}, clear=True):
            client = await cli.load_client(traq_config, mock_flow)

        assert client.access_token == "token-2"
        mock_flow.run.assert_awaited_once_with(
            "client-1", f"{BASE_URL}/oauth2/authorize"
        )
        with open(traq_config.credential_file) as f:
            assert json.load(f) == {"client_id": "client-1", "access_token": "token-2"}

    @pytest.mark.asyncio
    async def test_aborted_flow_saves_nothing(self, traq_config, mock_flow):
        """Test no credential is written when the flow is aborted."""
        mock_flow.run.side_effect = FlowAbortedError("channel closed unexpectedly")

        with patch.dict(os.environ, {"TRAQ_CLIENT_ID": "client-1"}, clear=True):
            with pytest.raises(FlowAbortedError):
                await cli.load_client(traq_config, mock_flow)

        assert not os.path.exists(traq_config.credential_file)

    @pytest.mark.asyncio
    async def test_launch_error_stops_server(self, mock_flow):
        """Test the callback server is shut down after a launch failure."""
        mock_flow.run.side_effect = LaunchError("no browser")
        client = TraqClient(client_id="client-1", api_base_url=BASE_URL)

        with pytest.raises(LaunchError):
            await cli.oauth2_authorize(client, mock_flow)

        mock_flow.shutdown.assert_awaited_once()


class TestMain:
    """Tests for the traq-oauth entry point."""

    def test_greets_user(self, tmp_path, respx_mock: MockRouter, caplog):
        """Test the authenticated user is greeted."""
        respx_mock.get(f"{BASE_URL}/users/me").mock(
            return_value=httpx.Response(200, json={"id": "user-1", "name": "traP"})
        )
        env = {
            "TRAQ_CLIENT_ID": "client-1",
            "TRAQ_CLIENT_TOKEN": "token-1",
            "TRAQ_CREDENTIAL_FILE": str(tmp_path / "credential.json"),
        }

        with patch.dict(os.environ, env, clear=True), patch.object(
            cli, "setup_global_logging"
        ), patch.object(cli, "load_dotenv"):
            with caplog.at_level(logging.INFO, logger="traq_oauth.main"):
                status = cli.main([])

        assert status == 0
        assert "Hello, traP! Your id is user-1" in caplog.text

    def test_incomplete_profile_fails(self, tmp_path, respx_mock: MockRouter):
        """Test a profile without id/name is reported as a failure."""
        respx_mock.get(f"{BASE_URL}/users/me").mock(
            return_value=httpx.Response(200, json={"id": "user-1"})
        )
        env = {
            "TRAQ_CLIENT_ID": "client-1",
            "TRAQ_CLIENT_TOKEN": "token-1",
            "TRAQ_CREDENTIAL_FILE": str(tmp_path / "credential.json"),
        }

        with patch.dict(os.environ, env, clear=True), patch.object(
            cli, "setup_global_logging"
        ), patch.object(cli, "load_dotenv"):
            assert cli.main([]) == 1

    def test_missing_credential_exits_non_zero(self, tmp_path):
        """Test a missing credential is reported with exit status 1."""
        env = {"TRAQ_CREDENTIAL_FILE": str(tmp_path / "missing.json")}

        with patch.dict(os.environ, env, clear=True), patch.object(
            cli, "setup_global_logging"
        ), patch.object(cli, "load_dotenv"):
            assert cli.main([]) == 1

    @pytest.mark.parametrize(
        "error",
        [
            StartupError("Could not bind callback server to 127.0.0.1:8080"),
            LaunchError("Could not launch browser: no runnable browser found"),
            FlowAbortedError("channel closed unexpectedly"),
        ],
    )
    def test_flow_failures_exit_non_zero(self, tmp_path, mock_flow, error):
        """Test authorization failures are reported with exit status 1."""
        mock_flow.run.side_effect = error
        env = {
            "TRAQ_CLIENT_ID": "client-1",
            "TRAQ_CREDENTIAL_FILE": str(tmp_path / "credential.json"),
        }

        with patch.dict(os.environ, env, clear=True), patch.object(
            cli, "setup_global_logging"
        ), patch.object(cli, "load_dotenv"), patch.object(
            cli, "AuthorizationFlow", return_value=mock_flow
        ):
            assert cli.main([]) == 1

        assert not os.path.exists(tmp_path / "credential.json")

    def test_port_in_use_exits_non_zero(self, tmp_path, caplog):
        """Test an occupied callback port fails cleanly without a traceback."""
        blocker = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        blocker.bind(("127.0.0.1", 0))
        blocker.listen(1)
        port = blocker.getsockname()[1]
        env = {
            "TRAQ_CLIENT_ID": "client-1",
            "TRAQ_CREDENTIAL_FILE": str(tmp_path / "credential.json"),
        }

        try:
            with patch.dict(os.environ, env, clear=True), patch.object(
                cli, "setup_global_logging"
            ), patch.object(cli, "load_dotenv"):
                with caplog.at_level(logging.INFO):
                    status = cli.main(["--port", str(port), "--no-browser"])
        finally:
            blocker.close()

        assert status == 1
        assert "StartupError" in caplog.text
        assert "Open this URL" not in caplog.text

    def test_malformed_port_setting_exits_non_zero(self, tmp_path):
        """Test a non-numeric TRAQ_CALLBACK_PORT is reported, not raised."""
        env = {
            "TRAQ_CLIENT_ID": "client-1",
            "TRAQ_CALLBACK_PORT": "eighty",
            "TRAQ_CREDENTIAL_FILE": str(tmp_path / "credential.json"),
        }

        with patch.dict(os.environ, env, clear=True), patch.object(
            cli, "setup_global_logging"
        ), patch.object(cli, "load_dotenv"):
            assert cli.main([]) == 1

class TestUploadStamp:
    """Tests for the traq-upload-stamp entry point."""

    def test_uploads_stamp(self, tmp_path, respx_mock: MockRouter):
        """Test the stamp is uploaded with a stored token."""
        image = tmp_path / "party.png"
        image.write_bytes(b"\x89PNG\r\n")
        route = respx_mock.post(f"{BASE_URL}/stamps").mock(
            return_value=httpx.Response(
                201,
                json={
                    "id": "stamp-1",
                    "name": "party",
                    "creatorId": "user-1",
                    "createdAt": "t",
                    "updatedAt": "t",
                    "fileId": "file-1",
                    "isUnicode": False,
                },
            )
        )
        env = {
            "TRAQ_CLIENT_ID": "client-1",
            "TRAQ_CLIENT_TOKEN": "token-1",
            "TRAQ_CREDENTIAL_FILE": str(tmp_path / "credential.json"),
        }

        with patch.dict(os.environ, env, clear=True), patch.object(
            upload_stamp, "setup_global_logging"
        ), patch.object(upload_stamp, "load_dotenv"):
            status = upload_stamp.main(["party", str(image)])

        assert status == 0
        assert route.called

    def test_unsupported_file_exits_non_zero(self, tmp_path):
        """Test an unsupported image type exits with status 1."""
        document = tmp_path / "notes.txt"
        document.write_text("hello")
        env = {
            "TRAQ_CLIENT_ID": "client-1",
            "TRAQ_CLIENT_TOKEN": "token-1",
            "TRAQ_CREDENTIAL_FILE": str(tmp_path / "credential.json"),
        }

        with patch.dict(os.environ, env, clear=True), patch.object(
            upload_stamp, "setup_global_logging"
        ), patch.object(upload_stamp, "load_dotenv"):
            assert upload_stamp.main(["notes", str(document)]) == 1

    def test_missing_file_exits_non_zero(self, tmp_path):
        """Test an unreadable image exits with status 1."""
        env = {
            "TRAQ_CLIENT_ID": "client-1",
            "TRAQ_CLIENT_TOKEN": "token-1",
            "TRAQ_CREDENTIAL_FILE": str(tmp_path / "credential.json"),
        }

        with patch.dict(os.environ, env, clear=True), patch.object(
            upload_stamp, "setup_global_logging"
        ), patch.object(upload_stamp, "load_dotenv"):
            assert upload_stamp.main(["party", str(tmp_path / "missing.png")]) == 1
