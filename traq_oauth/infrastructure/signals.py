"""
Interrupt sources for the shutdown race.
"""

import asyncio
import logging
import signal


logger = logging.getLogger(__name__)

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class SigintInterrupt:
    """
    Resolves when the operator interrupts the process (Ctrl-C or SIGTERM).

    The handlers are installed on the running loop only while someone is
    waiting, and removed afterwards.
    """

    def __init__(self, signals: tuple[signal.Signals, ...] = HANDLED_SIGNALS):
        self._signals = signals

    async def wait(self) -> None:
        loop = asyncio.get_running_loop()
        received = asyncio.Event()
        installed = []

        for sig in self._signals:
            try:
                loop.add_signal_handler(sig, received.set)
            except (NotImplementedError, RuntimeError) as e:
                # Windows loops and non-main threads cannot install handlers.
                logger.debug(f"Cannot listen for {sig.name}: {e}")
                continue
            installed.append(sig)

        try:
            await received.wait()
            logger.info("Interrupt received")
        finally:
            for sig in installed:
                loop.remove_signal_handler(sig)


class ManualInterrupt:
    """Interrupt delivered programmatically, e.g. by an embedding application."""

    def __init__(self):
        self._event = asyncio.Event()

    def interrupt(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()
