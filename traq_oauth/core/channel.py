"""
Single-value handoff of an authorization code.

The callback route sends, the orchestrator receives. The sender side is
single-use: once a code went through, every further send fails with
HandoffError instead of queueing a second code.
"""

import asyncio
import logging

from traq_oauth.core.exceptions import HandoffError


logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 2

# Marks closure of the sender side inside the queue.
_CLOSED = object()


class CodeChannel:
    """
    Bounded single-producer/single-consumer channel for one code.

    The capacity only keeps the handler from blocking while the receiver
    is not polling. It is never used to batch codes.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=capacity)
        self._sender_closed = False
        self._receiver_closed = False

    @property
    def sender_closed(self) -> bool:
        return self._sender_closed

    @property
    def receiver_closed(self) -> bool:
        return self._receiver_closed

    async def send(self, code: str) -> None:
        """
        Hand a code to the receiver.

        Never blocks. The first successful send consumes the sender.

        Raises:
            HandoffError: If the sender was consumed or closed, or the
                receiver went away.
        """
        if self._receiver_closed:
            raise HandoffError("receiver is gone")
        if self._sender_closed:
            raise HandoffError("channel is closed")
        try:
            self._queue.put_nowait(code)
        except asyncio.QueueFull as e:
            raise HandoffError("channel is full") from e
        self._sender_closed = True

    async def receive(self) -> str | None:
        """
        Wait for the code.

        Returns:
            The code, or None if the sender closed without sending.
        """
        if self._receiver_closed:
            return None
        item = await self._queue.get()
        self._receiver_closed = True
        if item is _CLOSED:
            logger.debug("Code channel closed without a value")
            return None
        return item

    def close(self) -> None:
        """Close the sender side. Safe to call more than once."""
        if self._sender_closed:
            return
        self._sender_closed = True
        if self._queue.empty():
            self._queue.put_nowait(_CLOSED)

    def close_receiver(self) -> None:
        """Close the receiver side so that later sends fail."""
        self._receiver_closed = True
