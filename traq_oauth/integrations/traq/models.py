"""
traQ request and response models.

Pydantic models for traQ API interactions.
"""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from traq_oauth.integrations.traq.exceptions import UnsupportedImageError


class ImageMime(str, Enum):
    """Image types accepted as stamp files."""

    JPEG = "image/jpeg"
    GIF = "image/gif"
    PNG = "image/png"

    @classmethod
    def from_path(cls, path: str | Path) -> "ImageMime":
        """
        Pick the MIME type from the file extension.

        Raises:
            UnsupportedImageError: If the extension is missing or unknown
        """
        extension = Path(path).suffix.lower().lstrip(".")
        if not extension:
            raise UnsupportedImageError(f"File has no extension: {path}")
        if extension in ("jpg", "jpeg"):
            return cls.JPEG
        if extension == "gif":
            return cls.GIF
        if extension == "png":
            return cls.PNG
        raise UnsupportedImageError(f"Unexpected extension: {extension}")


class TokenResponse(BaseModel):
    """Response model for the token endpoint."""

    access_token: str = Field(description="Bearer token for API calls")
    token_type: str | None = Field(default=None, description="Token type")
    expires_in: int | None = Field(default=None, description="Lifetime in seconds")

    model_config = ConfigDict(extra="allow")


class UserResponse(BaseModel):
    """Response model for GET /users/me."""

    id: str = Field(description="User ID")
    name: str = Field(description="traQ ID (handle)")
    display_name: str | None = Field(default=None, description="Display name")

    model_config = ConfigDict(extra="allow", alias_generator=to_camel, populate_by_name=True)


class Stamp(BaseModel):
    """Response model for a stamp."""

    id: str = Field(description="Stamp ID")
    name: str = Field(description="Stamp name")
    creator_id: str = Field(description="Creator user ID")
    created_at: str = Field(description="Creation timestamp")
    updated_at: str = Field(description="Update timestamp")
    file_id: str = Field(description="Image file ID")
    is_unicode: bool = Field(description="Whether this is a Unicode emoji stamp")

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
