"""
Request-scoped session registry.

A RequestContext is created for each request and passed explicitly through
the handling chain. Its Registry caches every session looked up during the
request so that a name always resolves to the same Session, and saves them
all in one call at the end of the request.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Optional

from starlette.requests import Request
from starlette.responses import Response

from websessions.sessions.cookie import Cookie, is_cookie_name_valid, set_cookie_to_response
from websessions.sessions.errors import InvalidNameError, MissingStoreError, MultiError
from websessions.sessions.session import Session

if TYPE_CHECKING:
    from websessions.sessions.store import Store

logger = logging.getLogger(__name__)


class RequestContext:
    """Incoming request, outgoing response and the request's session registry."""

    def __init__(self, request: Request, response: Response):
        self.request = request
        self.response = response
        self._registry: Optional["Registry"] = None

    @property
    def registry(self) -> "Registry":
        if self._registry is None:
            self._registry = Registry(self)
        return self._registry

    def cookie(self, name: str) -> Optional[str]:
        """Return the incoming cookie value for name, or None if absent"""
        return self.request.cookies.get(name)

    def set_cookie(self, cookie: Cookie) -> None:
        set_cookie_to_response(self.response, cookie)


@dataclass
class _SessionInfo:
    session: Optional[Session]
    error: Optional[BaseException]


class Registry:
    """Per-request cache of sessions keyed by name."""

    def __init__(self, ctx: RequestContext):
        self.ctx = ctx
        self._sessions: Dict[str, _SessionInfo] = {}

    def get(self, store: "Store", name: str) -> Session:
        """
        Return the session registered under name, creating it with store.

        Args:
            store: Store used to create the session and to save it later
            name: Session name, also the cookie name

        Returns:
            The same Session instance for every call with this name during
            the request

        Raises:
            InvalidNameError: If name is not a valid cookie name
            Exception: Whatever store.new raised; the failure is cached and
                raised again on later calls instead of being retried
        """
        if not is_cookie_name_valid(name):
            raise InvalidNameError(name)

        info = self._sessions.get(name)
        if info is None:
            try:
                session = store.new(self.ctx, name)
            except Exception as e:
                logger.warning(f"Failed to create session {name!r}: {e}")
                self._sessions[name] = _SessionInfo(session=None, error=e)
                raise
            session._name = name
            info = _SessionInfo(session=session, error=None)
            self._sessions[name] = info

        if info.error is not None:
            raise info.error

        info.session._store = store
        return info.session

    def save(self) -> None:
        """
        Save every session looked up during this request.

        Each session is attempted even if an earlier one failed, so partial
        persistence is possible.

        Raises:
            MultiError: If one or more sessions could not be saved
        """
        errors: List[BaseException] = []
        for name, info in self._sessions.items():
            session = info.session
            if session is None:
                continue
            if session.store is None:
                errors.append(MissingStoreError(name))
                continue
            try:
                session.store.save(self.ctx, session)
            except Exception as e:
                logger.error(f"Error saving session {name!r}: {e}")
                errors.append(e)
        if errors:
            raise MultiError(errors)

    def __contains__(self, name: str) -> bool:
        return name in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)


def get_registry(ctx: RequestContext) -> Registry:
    """Return the registry for this request, creating it on first use."""
    return ctx.registry


def save(ctx: RequestContext) -> None:
    """Save all sessions registered for this request."""
    get_registry(ctx).save()
