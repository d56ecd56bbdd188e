"""
FastAPI dependencies for the callback routes.
"""

from typing import Annotated

from fastapi import Depends, Request
from pydantic import ValidationError

from traq_oauth.core.domain import CallbackQuery
from traq_oauth.core.exceptions import ProtocolError
from traq_oauth.oauth.state import ServerState


def get_server_state(request: Request) -> ServerState:
    """
    Provide the ServerState of the app serving this request.

    Each CallbackServer builds its own app, so the state is
    never a process-wide singleton.
    """
    return request.app.state.server_state


def get_callback_query(request: Request) -> CallbackQuery:
    """
    Decode the provider's redirect query.

    Raises:
        ProtocolError: If `code` is missing or empty
    """
    try:
        return CallbackQuery.model_validate(dict(request.query_params))
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in e.errors()
        )
        raise ProtocolError(problems) from e


State = Annotated[ServerState, Depends(get_server_state)]
Callback = Annotated[CallbackQuery, Depends(get_callback_query)]
