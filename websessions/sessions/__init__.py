"""
Request-scoped server-side sessions.
"""

from websessions.sessions.cookie import Cookie, is_cookie_name_valid, new_cookie
from websessions.sessions.errors import (
    DecodeError,
    InvalidNameError,
    MissingStoreError,
    MultiError,
    SessionError,
    SessionExpiredError,
    SessionNotFoundError,
)
from websessions.sessions.options import Options
from websessions.sessions.registry import Registry, RequestContext, get_registry, save
from websessions.sessions.session import Session, new_session
from websessions.sessions.store import Store

__all__ = [
    "Cookie",
    "DecodeError",
    "InvalidNameError",
    "MissingStoreError",
    "MultiError",
    "Options",
    "Registry",
    "RequestContext",
    "Session",
    "SessionError",
    "SessionExpiredError",
    "SessionNotFoundError",
    "Store",
    "get_registry",
    "is_cookie_name_valid",
    "new_cookie",
    "new_session",
    "save",
]
