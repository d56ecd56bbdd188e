"""
traq-oauth: authorize against traQ and greet the authenticated user.

Loads the credential from the environment or the credential file, runs
the loopback authorization flow when there is no access token yet,
saves the credential and calls GET /users/me.
"""

import argparse
import asyncio
import logging
import sys
from dataclasses import replace

from dotenv import load_dotenv

from traq_oauth.core.exceptions import (
    AuthorizationFlowError,
    ConfigurationError,
    CredentialError,
    LaunchError,
)
from traq_oauth.core.ports import UrlOpener
from traq_oauth.infrastructure import credential_store
from traq_oauth.infrastructure.browser import (
    CommandUrlOpener,
    PrintUrlOpener,
    WebBrowserOpener,
)
from traq_oauth.integrations.traq.client import TraqClient
from traq_oauth.integrations.traq.config import TraqConfig, get_traq_config
from traq_oauth.integrations.traq.exceptions import TraqError
from traq_oauth.logging_config import setup_global_logging
from traq_oauth.oauth.config import CallbackServerConfig, get_callback_server_config
from traq_oauth.oauth.flow import AuthorizationFlow


logger = logging.getLogger(__name__)


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    """Options shared by the traq-oauth commands."""
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Loopback port for the OAuth redirect (default: TRAQ_CALLBACK_PORT or 8080)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Give up if no redirect arrives within this many seconds",
    )
    browser = parser.add_mutually_exclusive_group()
    browser.add_argument(
        "--browser-command",
        default=None,
        help="Command used to open the authorize URL, e.g. 'xdg-open'",
    )
    browser.add_argument(
        "--no-browser",
        action="store_true",
        help="Only log the authorize URL",
    )


def build_server_config(args: argparse.Namespace) -> CallbackServerConfig:
    overrides = {}
    if args.port is not None:
        overrides["port"] = args.port
    if args.timeout is not None:
        overrides["code_timeout"] = args.timeout
    return replace(get_callback_server_config(), **overrides)


def build_opener(args: argparse.Namespace) -> UrlOpener:
    if args.no_browser:
        return PrintUrlOpener()
    if args.browser_command:
        return CommandUrlOpener(args.browser_command)
    return WebBrowserOpener()


async def oauth2_authorize(client: TraqClient, flow: AuthorizationFlow) -> TraqClient:
    """
    Authorize the client through the loopback flow.

    On LaunchError the callback server is stopped before the error
    propagates.
    """
    try:
        code = await flow.run(client.client_id, client.authorize_endpoint)
    except LaunchError:
        await flow.shutdown()
        raise
    return await client.authorize_with(code)


async def load_client(
    traq_config: TraqConfig, flow: AuthorizationFlow
) -> TraqClient:
    """Build a client, authorizing first when no token is stored."""
    credential = credential_store.load_from_env_or_file(traq_config.credential_file)
    client = TraqClient.from_credential(credential, api_base_url=traq_config.api_base_url)
    if client.is_authorized:
        return client

    logger.info("No access token found, starting authorization")
    client = await oauth2_authorize(client, flow)
    credential_store.save_to(client.export_credential(), traq_config.credential_file)
    return client


async def greet(args: argparse.Namespace) -> int:
    traq_config = get_traq_config()
    flow = AuthorizationFlow(build_opener(args), build_server_config(args))
    client = await load_client(traq_config, flow)

    me = await client.get_me()
    logger.debug(f"your info: {me.model_dump()}")
    logger.info(f"Hello, {me.name}! Your id is {me.id}")
    return 0


def run_command(command, args: argparse.Namespace) -> int:
    """Run an async command and map failures to an exit status."""
    try:
        return asyncio.run(command(args))
    except (
        AuthorizationFlowError,
        ConfigurationError,
        CredentialError,
        TraqError,
    ) as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1
    except KeyboardInterrupt:
        logger.error("Interrupted")
        return 130


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    parser = argparse.ArgumentParser(
        description="Authorize against traQ and show the authenticated user."
    )
    add_common_arguments(parser)
    args = parser.parse_args(argv)

    setup_global_logging()
    return run_command(greet, args)


if __name__ == "__main__":
    sys.exit(main())
