"""
Loopback callback endpoints.

- GET /ping - Liveness probe
- GET /_authorized - Capture the provider's redirect
- GET /shutdown - Stop the server (operational escape hatch, optional)
"""

import logging

from fastapi import APIRouter
from fastapi.responses import HTMLResponse, PlainTextResponse

from traq_oauth.core.exceptions import HandoffError
from traq_oauth.oauth.config import CALLBACK_PATH, PING_PATH, SHUTDOWN_PATH
from traq_oauth.oauth.dependencies import Callback, State


logger = logging.getLogger(__name__)

router = APIRouter(tags=["callback"])

shutdown_router = APIRouter(tags=["operations"])

SUCCESS_PAGE = """<!DOCTYPE html>
<html>
<head><title>Authorization complete</title></head>
<body>
  <h1>success!</h1>
  <p>You can close this tab and return to the terminal.</p>
</body>
</html>"""


@router.get(PING_PATH, response_class=PlainTextResponse)
async def ping():
    """Liveness probe. Not part of the authorization contract."""
    return "pong"


@router.get(CALLBACK_PATH, response_class=HTMLResponse)
async def authorized(query: Callback, state: State):
    """
    Capture the authorization code from the provider's redirect.

    The code is handed to the waiting flow before shutdown is requested,
    so the server never stops ahead of the delivery. Duplicate hits are
    not rejected here; the channel refuses the second code and the
    browser still gets the success page.

    Args:
        query: Decoded redirect query (400 if `code` is missing)
        state: Server state of this listener

    Returns:
        Static success page
    """
    if not state.awaiting_code:
        logger.warning("Authorization redirect received but no flow is waiting")
        return SUCCESS_PAGE

    try:
        await state.deliver(query.code)
        logger.info("Authorization code captured")
    except HandoffError as e:
        logger.warning(
            f"Could not hand off authorization code: {e}",
            extra={"extra_fields": {"error": str(e)}},
        )

    state.shutdown.notify()
    return SUCCESS_PAGE


@shutdown_router.get(SHUTDOWN_PATH, response_class=PlainTextResponse)
async def shutdown(state: State):
    """Request a graceful stop of this listener."""
    logger.info("Shutdown requested over HTTP")
    state.shutdown.notify()
    return "shutdown"
