"""
One-shot shutdown notification and the shutdown race.

The callback server stops on whichever comes first: an external interrupt
or an internal notify() after the code was captured.
"""

import asyncio
import logging

from traq_oauth.core.ports import InterruptSignal


logger = logging.getLogger(__name__)

INTERRUPT = "interrupt"
SHUTDOWN = "shutdown"


class ShutdownSignal:
    """Broadcast, latched notification. notify() may be called repeatedly."""

    def __init__(self):
        self._event = asyncio.Event()

    @property
    def is_set(self) -> bool:
        return self._event.is_set()

    def notify(self) -> None:
        if self._event.is_set():
            logger.debug("Shutdown already requested")
            return
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()


async def wait_for_shutdown(
    signal: ShutdownSignal, interrupt: InterruptSignal
) -> str:
    """
    Race the shutdown signal against the interrupt.

    Args:
        signal: Internal shutdown signal
        interrupt: External interrupt source

    Returns:
        INTERRUPT or SHUTDOWN, whichever resolved first
    """
    arms = {
        asyncio.create_task(interrupt.wait(), name=INTERRUPT),
        asyncio.create_task(signal.wait(), name=SHUTDOWN),
    }
    try:
        done, _ = await asyncio.wait(arms, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for arm in arms:
            if not arm.done():
                arm.cancel()
        await asyncio.gather(*arms, return_exceptions=True)

    winner = next(iter(done))
    # Surface a failing interrupt source instead of treating it as a shutdown.
    winner.result()
    reason = winner.get_name()
    logger.info(f"Shutdown race resolved by {reason}")
    return reason
