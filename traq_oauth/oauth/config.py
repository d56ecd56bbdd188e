"""
Callback server configuration.

Loaded from environment variables. The listener binds a fixed loopback
port; there is no dynamic port negotiation.
"""

import os
from dataclasses import dataclass
from functools import lru_cache

from traq_oauth.core.channel import DEFAULT_CAPACITY
from traq_oauth.core.exceptions import ConfigurationError


DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8080

PING_PATH = "/ping"
CALLBACK_PATH = "/_authorized"
SHUTDOWN_PATH = "/shutdown"


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_number(name: str, convert, default=None):
    value = os.getenv(name)
    if not value:
        return default
    try:
        return convert(value)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from e


@dataclass
class CallbackServerConfig:
    """
    Loopback callback server settings.

    code_timeout is None by default: the flow waits for the redirect
    for as long as it takes, unless an interrupt arrives.
    """

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    channel_capacity: int = DEFAULT_CAPACITY
    code_timeout: float | None = None
    graceful_shutdown_timeout: float = 5.0
    shutdown_route_enabled: bool = True

    @classmethod
    def from_env(cls) -> "CallbackServerConfig":
        """
        Load configuration from environment variables.

        Raises:
            ConfigurationError: If a numeric setting does not parse
        """
        return cls(
            host=os.getenv("TRAQ_CALLBACK_HOST", DEFAULT_HOST),
            port=_env_number("TRAQ_CALLBACK_PORT", int, DEFAULT_PORT),
            code_timeout=_env_number("TRAQ_AUTH_TIMEOUT", float),
            shutdown_route_enabled=_env_flag("TRAQ_CALLBACK_SHUTDOWN_ROUTE", True),
        )

    @property
    def redirect_uri(self) -> str:
        """Redirect URI to register with the provider."""
        return f"http://localhost:{self.port}{CALLBACK_PATH}"


@lru_cache()
def get_callback_server_config() -> CallbackServerConfig:
    """Get callback server configuration singleton."""
    return CallbackServerConfig.from_env()
