"""Abstract base class for session store implementations.

This module defines the store contract that every backend (relational,
in-memory) conforms to. The registry and Session only depend on this
interface.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from websessions.sessions.registry import get_registry
from websessions.sessions.session import Session

if TYPE_CHECKING:
    from websessions.sessions.registry import RequestContext


class Store(ABC):
    """Abstract base class for session backends.

    Example usage:
        session = store.get(ctx, "auth")
        session.values["uid"] = 42
        save(ctx)
    """

    def get(self, ctx: "RequestContext", name: str) -> Session:
        """Return the cached session for name, creating it on first use.

        Goes through the request's registry rather than the backend, so
        repeated calls within one request return the same instance.

        Raises:
            InvalidNameError: If name is not a valid cookie name.
        """
        return get_registry(ctx).get(self, name)

    @abstractmethod
    def new(self, ctx: "RequestContext", name: str) -> Session:
        """Create a session, loading persisted data when the request carries
        a valid cookie for name.

        A missing, undecodable, unknown or expired cookie yields a fresh
        session with is_new set; those failures are never raised.
        """
        pass

    @abstractmethod
    def save(self, ctx: "RequestContext", session: Session) -> None:
        """Persist the session and attach its cookie to the response.

        Handles both the first insert and later updates.
        """
        pass

    @abstractmethod
    def delete(self, ctx: "RequestContext", session: Session) -> None:
        """Invalidate the persisted session and expire its cookie.

        Clears session.values as a side effect.
        """
        pass
