"""
Exception types raised by the session layer.

Load-time failures (DecodeError, SessionNotFoundError, SessionExpiredError)
are absorbed by stores when a session is materialized. Persistence failures
are SQLAlchemy exceptions and reach the caller unchanged.
"""

from typing import Iterable, List, Optional


class SessionError(Exception):
    """Base class for session errors"""
    pass


class InvalidNameError(SessionError):
    """Raised when a session name is not a valid cookie name"""

    def __init__(self, name: str):
        super().__init__(f"invalid character in cookie name: {name!r}")
        self.name = name


class DecodeError(SessionError):
    """Raised when a cookie value or stored blob fails verification or decoding"""
    pass


class SessionNotFoundError(SessionError):
    """Raised when no persisted row exists for a session id"""

    def __init__(self, session_id: str):
        super().__init__(f"session {session_id!r} not found")
        self.session_id = session_id


class SessionExpiredError(SessionError):
    """Raised when a persisted session is past its expiry"""

    def __init__(self, session_id: str, expires_on=None):
        super().__init__(f"session {session_id!r} expired on {expires_on}")
        self.session_id = session_id
        self.expires_on = expires_on


class MissingStoreError(SessionError):
    """Raised when a registry entry has no store to save through"""

    def __init__(self, name: str):
        super().__init__(f"missing store for session {name!r}")
        self.name = name


class MultiError(SessionError):
    """
    Several errors reported as one.

    The message is the first error's message followed by a count of the
    remaining ones.
    """

    def __init__(self, errors: Optional[Iterable[BaseException]] = None):
        self.errors: List[BaseException] = [e for e in (errors or []) if e is not None]
        super().__init__(self._format())

    def _format(self) -> str:
        n = len(self.errors)
        if n == 0:
            return "(0 errors)"
        first = str(self.errors[0])
        if n == 1:
            return first
        if n == 2:
            return f"{first} (and 1 other error)"
        return f"{first} (and {n - 1} other errors)"

    def __str__(self) -> str:
        return self._format()

    def __len__(self) -> int:
        return len(self.errors)

    def __iter__(self):
        return iter(self.errors)


class DecodeMultiError(MultiError, DecodeError):
    """Every codec failed to decode a value"""
    pass
