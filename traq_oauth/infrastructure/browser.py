"""
URL openers: show the provider's authorize page to the user.
"""

import asyncio
import logging
import shlex
import webbrowser

from traq_oauth.core.exceptions import LaunchError


logger = logging.getLogger(__name__)


class WebBrowserOpener:
    """Open URLs with the platform's default browser."""

    async def open(self, url: str) -> None:
        """
        Open the URL in a new browser tab.

        Raises:
            LaunchError: If no runnable browser was found
        """
        try:
            opened = await asyncio.to_thread(webbrowser.open, url, new=2)
        except webbrowser.Error as e:
            raise LaunchError(f"Could not launch browser: {e}") from e

        if not opened:
            raise LaunchError("Could not launch browser: no runnable browser found")
        logger.debug("Browser launched")


class CommandUrlOpener:
    """
    Open URLs by running a launcher command such as `open` or `xdg-open`.

    The URL is appended as the last argument.
    """

    def __init__(self, command: str | list[str]):
        self.command = shlex.split(command) if isinstance(command, str) else command
        if not self.command:
            raise ValueError("launcher command must not be empty")

    async def open(self, url: str) -> None:
        """
        Run the launcher and wait for it to exit.

        Raises:
            LaunchError: If the launcher is missing or exits non-zero
        """
        try:
            process = await asyncio.create_subprocess_exec(
                *self.command,
                url,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise LaunchError(f"Could not run {self.command[0]!r}: {e}") from e

        _, stderr = await process.communicate()
        if process.returncode != 0:
            detail = stderr.decode(errors="replace").strip()
            raise LaunchError(
                f"{self.command[0]!r} exited with status {process.returncode}: {detail}"
            )
        logger.debug(f"Launched browser via {self.command[0]!r}")


class PrintUrlOpener:
    """Log the URL instead of opening it, for headless machines."""

    async def open(self, url: str) -> None:
        logger.info(f"Open this URL in a browser to authorize: {url}")
