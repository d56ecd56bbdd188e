"""
Port definitions (interfaces) for the authorization flow.

The flow depends on these contracts, not on a concrete browser or on
process signal handling. Infrastructure adapters implement them.
"""

from typing import Protocol


class UrlOpener(Protocol):
    """
    Port (interface) for showing a URL to the user.

    Implemented by infrastructure adapters (e.g., WebBrowserOpener).
    Tests substitute a fake so no browser is spawned.
    """

    async def open(self, url: str) -> None:
        """
        Open the URL, fire-and-forget.

        Args:
            url: Absolute URL to open

        Raises:
            LaunchError: If the URL could not be handed to a browser
        """
        ...


class InterruptSignal(Protocol):
    """Port (interface) for an externally delivered interrupt."""

    async def wait(self) -> None:
        """Suspend until the interrupt is delivered."""
        ...
