"""Server-side session storage on a relational database.

The session payload is stored as a codec-encoded blob in one table row and
the row id is the session id. Only the id, sealed by the codec, travels in
the cookie. Statements are SQLAlchemy Core constructs built once per store;
concurrency is left to the engine's connection pool.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Generator

from sqlalchemy import bindparam, delete, insert, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DBSession

from websessions.core.utils.encryption import (
    KeyPair,
    codecs_from_pairs,
    decode_multi,
    encode_multi,
)
from websessions.db.models.session_store import session_table
from websessions.db.session import get_db_sync, make_session_factory
from websessions.sessions.cookie import new_cookie
from websessions.sessions.errors import (
    DecodeError,
    SessionError,
    SessionExpiredError,
    SessionNotFoundError,
)
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

# Encoded payloads may be much larger than a cookie
MAX_ENCODED_LENGTH = 4096 * 4


class SQLStore(Store):
    def __init__(
        self,
        engine: Engine,
        table_name: str,
        path: str,
        max_age: int,
        *key_pairs: KeyPair,
        create_table: bool = True,
    ):
        """
        Args:
            engine: Live SQLAlchemy engine
            table_name: Name of the session table
            path: Default cookie path
            max_age: Default session lifetime in seconds
            key_pairs: Codec keys, newest first; each is a hash key or a
                (hash_key, block_key) tuple
            create_table: Create the table if it does not exist
        """
        if not key_pairs:
            raise ValueError("at least one key pair is required")

        self.engine = engine
        self.table = session_table(table_name)
        self._session_factory = make_session_factory(engine)

        if create_table:
            self._ensure_table()

        c = self.table.c
        self.stmt_insert = insert(self.table)
        self.stmt_update = update(self.table).where(c.id == bindparam("session_id"))
        self.stmt_delete = delete(self.table).where(c.id == bindparam("session_id"))
        self.stmt_select = select(
            c.id, c.session_data, c.created_on, c.modified_on, c.expires_on
        ).where(c.id == bindparam("session_id"))

        # Lifetime is bounded by the row expiry, not the codec timestamp
        self.codecs = codecs_from_pairs(
            *key_pairs,
            max_age=0,
            max_length=MAX_ENCODED_LENGTH,
        )
        self.options = Options(path=path, max_age=max_age)

    def _ensure_table(self) -> None:
        """Create the session table if it does not exist."""
        try:
            self.table.create(bind=self.engine, checkfirst=True)
            logger.debug(f"Session table {self.table.name!r} ready")
        except SQLAlchemyError as e:
            logger.error(f"Failed to initialize session table {self.table.name!r}: {e}")
            raise

    def close(self) -> None:
        """Release the engine's pooled connections."""
        self.engine.dispose()

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
            logger.debug(f"Ignoring undecodable cookie for session {name!r}")
            return session
        if not isinstance(session_id, str) or not session_id:
            return session
        session.id = session_id

        try:
            self._load(session)
            session.is_new = False
        except (SessionError, SQLAlchemyError) as e:
            logger.info(f"Starting a new session for {name!r}: {e}")
            session.id = ""
            session.values.clear()
        return session

    def save(self, ctx: "RequestContext", session: Session) -> None:
        if session.id == "":
            self._insert(session)
        else:
            self._update(session)

        encoded = encode_multi(session.name, session.id, self.codecs)
        ctx.set_cookie(new_cookie(session.name, encoded, session.options))

    def delete(self, ctx: "RequestContext", session: Session) -> None:
        options = session.options.copy(max_age=-1)
        ctx.set_cookie(new_cookie(session.name, "", options))
        session.values.clear()

        if not session.id:
            return
        row_id = self._row_id(session.id)
        with self._transaction() as db:
            db.execute(self.stmt_delete, {"session_id": row_id})
        logger.debug("Deleted session row", extra={"session_id": session.id})

    def purge_expired(self) -> int:
        """
        Delete every row whose expiry has passed.

        Nothing calls this automatically; schedule it if expired rows should
        not accumulate.

        Returns:
            Number of rows removed
        """
        stmt = delete(self.table).where(self.table.c.expires_on < utcnow())
        with self._transaction() as db:
            purged = db.execute(stmt).rowcount
        logger.info(f"Purged {purged} expired sessions from {self.table.name!r}")
        return purged

    @contextmanager
    def _transaction(self) -> Generator[DBSession, None, None]:
        with get_db_sync(self._session_factory) as db:
            try:
                yield db
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Database operation failed on {self.table.name!r}: {e}")
                raise

    @staticmethod
    def _row_id(session_id: str) -> int:
        try:
            return int(session_id)
        except ValueError:
            raise SessionNotFoundError(session_id) from None

    def _encode_values(self, session: Session) -> bytes:
        return encode_multi(session.name, session.values, self.codecs).encode("ascii")

    def _insert(self, session: Session) -> None:
        created_on, modified_on, expires_on = insert_times(
            session.values, session.options.max_age
        )
        strip_reserved(session.values)

        encoded = self._encode_values(session)
        with self._transaction() as db:
            result = db.execute(
                self.stmt_insert,
                {
                    "session_data": encoded,
                    "created_on": created_on,
                    "modified_on": modified_on,
                    "expires_on": expires_on,
                },
            )
            row_id = result.inserted_primary_key[0]
        session.id = str(row_id)
        logger.debug("Inserted session row", extra={"session_id": session.id})

    def _update(self, session: Session) -> None:
        if session.is_new:
            return self._insert(session)

        created_on, modified_on, expires_on = update_times(
            session.values, session.options.max_age
        )
        strip_reserved(session.values)

        encoded = self._encode_values(session)
        row_id = self._row_id(session.id)
        with self._transaction() as db:
            db.execute(
                self.stmt_update,
                {
                    "session_id": row_id,
                    "session_data": encoded,
                    "created_on": created_on,
                    "modified_on": modified_on,
                    "expires_on": expires_on,
                },
            )
        logger.debug("Updated session row", extra={"session_id": session.id})

    def _load(self, session: Session) -> None:
        with get_db_sync(self._session_factory) as db:
            row = db.execute(
                self.stmt_select, {"session_id": self._row_id(session.id)}
            ).first()
        if row is None:
            raise SessionNotFoundError(session.id)

        now = utcnow()
        if row.expires_on < now:
            logger.info(f"Session expired on {row.expires_on}, but it is {now} now.")
            raise SessionExpiredError(session.id, row.expires_on)

        values = {}
        if row.session_data is not None:
            try:
                blob = row.session_data.decode("ascii")
            except UnicodeDecodeError as e:
                raise DecodeError("stored session data is not ASCII") from e
            values = decode_multi(session.name, blob, self.codecs)
        if not isinstance(values, dict):
            raise DecodeError("stored session data is not a mapping")
        session.values = values
        inject_times(session.values, row.created_on, row.modified_on, row.expires_on)
