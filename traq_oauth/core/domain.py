"""
Core domain models for the loopback authorization flow.

These models are independent of the HTTP framework serving the callback.
"""

from pydantic import BaseModel, ConfigDict, Field


# Opaque, provider-issued, single-use.
AuthorizationCode = str


class CallbackQuery(BaseModel):
    """
    Query parameters of the provider's redirect.

    Only `code` is required. Anything else the provider appends
    (e.g., state) is ignored.
    """

    code: AuthorizationCode = Field(
        min_length=1, description="Authorization code issued by the provider"
    )

    model_config = ConfigDict(extra="ignore")


class Credential(BaseModel):
    """
    Client registration plus the token obtained for it.

    access_token is None until the first authorization completes.
    """

    client_id: str = Field(min_length=1, description="OAuth client ID")
    access_token: str | None = Field(default=None, description="Bearer token")
