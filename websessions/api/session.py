"""
Session API endpoints.

Read, update and end the caller's session. Each handler saves explicitly
before returning so the Set-Cookie header reaches the response.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel

from websessions.sessions import MultiError, RequestContext, Session, Store, save
from websessions.stores.common import RESERVED_KEYS

logger = logging.getLogger(__name__)

router = APIRouter()


class SessionValue(BaseModel):
    """Request model for setting a session value"""
    value: Any

    model_config = {
        "json_schema_extra": {
            "example": {"value": 42}
        }
    }


class SessionView(BaseModel):
    """Response model for the current session"""
    name: str
    is_new: bool
    values: Dict[str, Any]

    model_config = {
        "json_schema_extra": {
            "example": {
                "name": "session",
                "is_new": False,
                "values": {"uid": 42, "created_on": "2026-01-01T00:00:00"}
            }
        }
    }


def get_session_context(request: Request, response: Response) -> RequestContext:
    """Dependency providing the request-scoped session context"""
    return RequestContext(request, response)


def get_session_store(request: Request) -> Store:
    """Dependency providing the application's session store"""
    return request.app.state.session_store


def _current_session(ctx: RequestContext, store: Store) -> Session:
    return store.get(ctx, ctx.request.app.state.session_cookie_name)


def _view(session: Session) -> SessionView:
    return SessionView(name=session.name, is_new=session.is_new, values=dict(session.values))


@router.get("", response_model=SessionView)
def read_session(
    ctx: RequestContext = Depends(get_session_context),
    store: Store = Depends(get_session_store),
) -> SessionView:
    """Return the caller's session without persisting anything."""
    return _view(_current_session(ctx, store))


@router.put("/{key}", response_model=SessionView)
def set_session_value(
    key: str,
    body: SessionValue,
    ctx: RequestContext = Depends(get_session_context),
    store: Store = Depends(get_session_store),
) -> SessionView:
    """
    Store a value in the caller's session.

    Creates the session on first use and refreshes its expiry.
    """
    if key in RESERVED_KEYS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"'{key}' is reserved for session bookkeeping",
        )

    session = _current_session(ctx, store)
    session.values[key] = body.value
    try:
        save(ctx)
    except MultiError as e:
        logger.error(f"Failed to save session: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save session",
        )
    return _view(session)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
def end_session(
    ctx: RequestContext = Depends(get_session_context),
    store: Store = Depends(get_session_store),
) -> None:
    """Delete the caller's session and expire its cookie."""
    session = _current_session(ctx, store)
    store.delete(ctx, session)
