"""
traQ API client.

Exchanges the authorization code for a token and calls the few API
endpoints the command-line tools need.
"""

import logging
from pathlib import Path

import httpx
from pydantic import ValidationError

from traq_oauth.core.domain import AuthorizationCode, Credential
from traq_oauth.integrations.traq.config import TRAQ_BASE_URL
from traq_oauth.integrations.traq.exceptions import (
    AuthorizationRequiredError,
    TraqApiError,
    TraqAuthError,
)
from traq_oauth.integrations.traq.models import (
    ImageMime,
    Stamp,
    TokenResponse,
    UserResponse,
)


logger = logging.getLogger(__name__)


class TraqClient:
    """Client for traQ API v3."""

    def __init__(
        self,
        client_id: str,
        access_token: str | None = None,
        api_base_url: str = TRAQ_BASE_URL,
        timeout: float = 30.0,
    ):
        self.client_id = client_id
        self.access_token = access_token
        self.api_base_url = api_base_url.rstrip("/")
        self._timeout = timeout

    @classmethod
    def from_credential(
        cls, credential: Credential, api_base_url: str = TRAQ_BASE_URL
    ) -> "TraqClient":
        return cls(
            client_id=credential.client_id,
            access_token=credential.access_token,
            api_base_url=api_base_url,
        )

    @property
    def is_authorized(self) -> bool:
        return self.access_token is not None

    @property
    def authorize_endpoint(self) -> str:
        return f"{self.api_base_url}/oauth2/authorize"

    def export_credential(self) -> Credential:
        """Credential to persist for the next run."""
        return Credential(client_id=self.client_id, access_token=self.access_token)

    async def authorize_with(self, code: AuthorizationCode) -> "TraqClient":
        """
        Exchange an authorization code for an access token.

        Args:
            code: Code captured by the callback server

        Returns:
            A new client carrying the access token

        Raises:
            TraqApiError: If the token endpoint fails or returns no token
        """
        url = f"{self.api_base_url}/oauth2/token"
        form = {
            "grant_type": "authorization_code",
            "client_id": self.client_id,
            "code": code,
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(url, data=form)
                response.raise_for_status()
                data = response.json()
            token = TokenResponse.model_validate(data)

        except ValidationError as e:
            raise TraqApiError(f"Received unexpected token response: {data}") from e
        except httpx.HTTPStatusError as e:
            logger.error(f"Token exchange failed: {e.response.text}")
            raise TraqApiError(
                f"Token exchange failed: {e.response.status_code} {e.response.text}"
            ) from e
        except httpx.RequestError as e:
            raise TraqApiError(f"Network error during token exchange: {e}") from e
        except ValueError as e:
            raise TraqApiError(f"Token endpoint returned invalid JSON: {e}") from e

        logger.debug(f"Received token of type {token.token_type}")
        return TraqClient(
            client_id=self.client_id,
            access_token=token.access_token,
            api_base_url=self.api_base_url,
            timeout=self._timeout,
        )

    def _get_headers(self) -> dict:
        if self.access_token is None:
            raise AuthorizationRequiredError("authorize required before calling API")
        return {"Authorization": f"Bearer {self.access_token}"}

    async def _request(self, method: str, endpoint: str, **kwargs) -> httpx.Response:
        """
        Make an authenticated request to traQ API.

        Raises:
            AuthorizationRequiredError: If there is no access token yet
            TraqAuthError: On 401/403
            TraqApiError: On any other failure
        """
        headers = self._get_headers()
        url = f"{self.api_base_url}{endpoint}"

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            try:
                response = await client.request(method, url, headers=headers, **kwargs)
            except httpx.RequestError as e:
                logger.error(f"Network error calling {method} {endpoint}: {e}")
                raise TraqApiError(f"Network error: {e}") from e

        logger.debug(f"{method} {endpoint}: {response.status_code}")
        if response.status_code in (401, 403):
            raise TraqAuthError(f"{method} {endpoint} was rejected: {response.status_code}")
        if response.is_error:
            logger.error(f"error message: {response.text}")
            raise TraqApiError(
                f"{method} {endpoint} failed: {response.status_code} {response.text}"
            )
        return response

    async def get_me(self) -> UserResponse:
        """Get the authenticated user's profile."""
        response = await self._request("GET", "/users/me")
        try:
            return UserResponse.model_validate(response.json())
        except (ValidationError, ValueError) as e:
            raise TraqApiError(f"user info was not found in the response: {e}") from e

    async def add_stamp(self, name: str, path: str | Path) -> Stamp:
        """
        Upload an image as a new stamp.

        Args:
            name: Stamp name
            path: Image file (jpg, jpeg, gif or png)

        Returns:
            The created stamp

        Raises:
            UnsupportedImageError: If the file extension is not accepted
            OSError: If the file cannot be read
        """
        path = Path(path)
        mime = ImageMime.from_path(path)
        content = path.read_bytes()

        response = await self._request(
            "POST",
            "/stamps",
            data={"name": name},
            files={"file": (path.name, content, mime.value)},
        )
        try:
            return Stamp.model_validate(response.json())
        except (ValidationError, ValueError) as e:
            raise TraqApiError(f"Invalid API response for stamp '{name}': {e}") from e
