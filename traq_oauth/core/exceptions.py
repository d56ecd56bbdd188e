"""
Domain exceptions for the loopback authorization flow.

Only channel-level outcomes cross from the callback server to the
orchestrator. HTTP-layer problems are answered at the HTTP layer.
"""


class AuthorizationFlowError(Exception):
    """Base exception for authorization flow failures."""

    pass


class StartupError(AuthorizationFlowError):
    """
    Raised when the callback listener cannot be bound.

    Fatal for the flow. The bind is not retried.
    """

    pass


class LaunchError(AuthorizationFlowError):
    """Raised when the system browser could not be launched."""

    pass


class ProtocolError(AuthorizationFlowError):
    """
    Raised when a redirect does not carry a usable authorization code.

    Local to a single HTTP exchange and answered with a 4xx response.
    """

    pass


class HandoffError(AuthorizationFlowError):
    """
    Raised when a captured code cannot be handed to the waiting flow.

    The receiver may already be gone or a code was already delivered.
    Logged by the capture route, never escalated.
    """

    pass


class FlowAbortedError(AuthorizationFlowError):
    """Raised when the code channel closes before any code arrived."""

    pass


class FlowTimeoutError(FlowAbortedError):
    """Raised when no code arrived within the configured timeout."""

    pass


class CredentialError(Exception):
    """Raised when credentials cannot be loaded or saved."""

    pass


class ConfigurationError(Exception):
    """Raised when an environment setting has an invalid value."""

    pass
