"""In-process session storage.

Sessions live in a dict shared by every request of the process, so they are
lost on restart and not shared between workers. Useful for development and
tests; the cookie format and expiry rules match SQLStore.
"""
from __future__ import annotations

import copy
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime
from threading import Lock
from typing import TYPE_CHECKING, Any, Dict

from websessions.core.utils.encryption import (
    KeyPair,
    codecs_from_pairs,
    decode_multi,
    encode_multi,
)
from websessions.sessions.cookie import new_cookie
from websessions.sessions.errors import DecodeError, SessionExpiredError, SessionNotFoundError
from websessions.sessions.options import Options
from websessions.sessions.session import Session, new_session
from websessions.sessions.store import Store
from websessions.stores.common import (
    inject_times,
    insert_times,
    strip_reserved,
    update_times,
    utcnow,
)

if TYPE_CHECKING:
    from websessions.sessions.registry import RequestContext

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    values: Dict[str, Any]
    created_on: datetime
    modified_on: datetime
    expires_on: datetime


class MemoryStore(Store):
    def __init__(self, path: str, max_age: int, *key_pairs: KeyPair):
        if not key_pairs:
            raise ValueError("at least one key pair is required")
        # Lifetime is bounded by the entry expiry, not the codec timestamp
        self.codecs = codecs_from_pairs(*key_pairs, max_age=0)
        self.options = Options(path=path, max_age=max_age)
        self._entries: Dict[str, _Entry] = {}
        self._lock = Lock()

    def new(self, ctx: "RequestContext", name: str) -> Session:
        session = new_session(self, name)
        session.options = self.options.copy()
        session.is_new = True

        cookie = ctx.cookie(name)
        if cookie is None:
            return session
        try:
            session_id = decode_multi(name, cookie, self.codecs)
        except DecodeError:
            return session
        if not isinstance(session_id, str) or not session_id:
            return session

        try:
            self._load(session_id, session)
            session.id = session_id
            session.is_new = False
        except (SessionNotFoundError, SessionExpiredError) as e:
            logger.info(f"Starting a new session for {name!r}: {e}")
        return session

    def save(self, ctx: "RequestContext", session: Session) -> None:
        if session.id == "" or session.is_new:
            created_on, modified_on, expires_on = insert_times(
                session.values, session.options.max_age
            )
            session_id = secrets.token_urlsafe(32)
        else:
            created_on, modified_on, expires_on = update_times(
                session.values, session.options.max_age
            )
            session_id = session.id
        strip_reserved(session.values)

        entry = _Entry(copy.deepcopy(session.values), created_on, modified_on, expires_on)
        with self._lock:
            self._entries[session_id] = entry
        session.id = session_id

        encoded = encode_multi(session.name, session.id, self.codecs)
        ctx.set_cookie(new_cookie(session.name, encoded, session.options))

    def delete(self, ctx: "RequestContext", session: Session) -> None:
        options = session.options.copy(max_age=-1)
        ctx.set_cookie(new_cookie(session.name, "", options))
        session.values.clear()
        with self._lock:
            self._entries.pop(session.id, None)

    def purge_expired(self) -> int:
        """Drop expired entries and return how many were removed"""
        now = utcnow()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.expires_on < now]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def _load(self, session_id: str, session: Session) -> None:
        with self._lock:
            entry = self._entries.get(session_id)
        if entry is None:
            raise SessionNotFoundError(session_id)
        if entry.expires_on < utcnow():
            raise SessionExpiredError(session_id, entry.expires_on)
        session.values = copy.deepcopy(entry.values)
        inject_times(session.values, entry.created_on, entry.modified_on, entry.expires_on)

    def __len__(self) -> int:
        return len(self._entries)
