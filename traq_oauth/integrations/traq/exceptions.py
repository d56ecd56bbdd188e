"""
traQ integration exceptions.

Custom exceptions for traQ API errors.
"""


class TraqError(Exception):
    """Base exception for traQ errors."""

    pass


class AuthorizationRequiredError(TraqError):
    """An API call was attempted before an access token was obtained."""

    pass


class TraqAuthError(TraqError):
    """Authentication/authorization error (401/403)."""

    pass


class TraqApiError(TraqError):
    """Unexpected API response, HTTP error or network failure."""

    pass


class UnsupportedImageError(TraqError):
    """Stamp image has an extension traQ does not accept."""

    pass
