"""
Credential persistence.

Credentials come from the environment first and from a JSON file
otherwise. Only the file is ever written.
"""

import logging
import os
from pathlib import Path

from pydantic import ValidationError

from traq_oauth.core.domain import Credential
from traq_oauth.core.exceptions import CredentialError


logger = logging.getLogger(__name__)

CLIENT_ID_ENV = "TRAQ_CLIENT_ID"
ACCESS_TOKEN_ENV = "TRAQ_CLIENT_TOKEN"


def load_from_env() -> Credential:
    """
    Read the credential from TRAQ_CLIENT_ID / TRAQ_CLIENT_TOKEN.

    Raises:
        CredentialError: If TRAQ_CLIENT_ID is not set
    """
    client_id = os.getenv(CLIENT_ID_ENV)
    if not client_id:
        raise CredentialError(f"{CLIENT_ID_ENV} is not set")
    return Credential(client_id=client_id, access_token=os.getenv(ACCESS_TOKEN_ENV))


def load_from_file(path: str | Path) -> Credential:
    """
    Read the credential from a JSON file.

    Raises:
        CredentialError: If the file is missing or malformed
    """
    path = Path(path)
    try:
        return Credential.model_validate_json(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise CredentialError(f"Cannot read credential file {path}: {e}") from e
    except ValidationError as e:
        raise CredentialError(f"Invalid credential file {path}: {e}") from e


def load_from_env_or_file(path: str | Path) -> Credential:
    """Environment variables take priority over the file."""
    try:
        return load_from_env()
    except CredentialError as env_error:
        logger.debug(f"No credential in environment ({env_error}), reading {path}")
    return load_from_file(path)


def save_to(credential: Credential, path: str | Path) -> None:
    """
    Write the credential as pretty-printed JSON.

    Raises:
        CredentialError: If the file cannot be written
    """
    path = Path(path)
    try:
        path.write_text(credential.model_dump_json(indent=2), encoding="utf-8")
    except OSError as e:
        raise CredentialError(f"Cannot write credential file {path}: {e}") from e
    logger.info(f"Saved credential to {path}")
