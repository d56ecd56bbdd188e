"""
traQ API configuration.

Contains constants and configuration for interacting with traQ API v3.
"""

from dataclasses import dataclass
from functools import lru_cache
import os


# traQ API base URL
TRAQ_BASE_URL = "https://q.trap.jp/api/v3"

# Where the client ID and access token are kept between runs
CREDENTIAL_FILE_PATH = "credential.json"


@dataclass
class TraqConfig:
    """Configuration for traQ API access."""

    api_base_url: str = TRAQ_BASE_URL
    credential_file: str = CREDENTIAL_FILE_PATH

    @classmethod
    def from_env(cls) -> "TraqConfig":
        """Load configuration from environment variables."""
        return cls(
            api_base_url=os.getenv("TRAQ_API_BASE_URL", TRAQ_BASE_URL).rstrip("/"),
            credential_file=os.getenv("TRAQ_CREDENTIAL_FILE", CREDENTIAL_FILE_PATH),
        )


@lru_cache()
def get_traq_config() -> TraqConfig:
    """Get traQ configuration singleton."""
    return TraqConfig.from_env()
