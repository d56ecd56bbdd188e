"""
Shared state between the callback routes and the server lifecycle.
"""

from dataclasses import dataclass, field

from traq_oauth.core.channel import CodeChannel
from traq_oauth.core.domain import AuthorizationCode
from traq_oauth.core.exceptions import HandoffError
from traq_oauth.core.shutdown import ShutdownSignal


@dataclass
class ServerState:
    """
    Handle owned by one callback server instance.

    codes is None for liveness-only deployments, where no flow is
    waiting for a code.
    """

    codes: CodeChannel | None = None
    shutdown: ShutdownSignal = field(default_factory=ShutdownSignal)

    @property
    def awaiting_code(self) -> bool:
        return self.codes is not None

    async def deliver(self, code: AuthorizationCode) -> None:
        """
        Send a captured code to the waiting flow.

        Raises:
            HandoffError: If there is no flow or the handoff already happened
        """
        if self.codes is None:
            raise HandoffError("no authorization flow is waiting for a code")
        await self.codes.send(code)

    def release(self) -> None:
        """Close the sender side so a waiting flow is not left hanging."""
        if self.codes is not None:
            self.codes.close()
