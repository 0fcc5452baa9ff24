from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Integer, LargeBinary, MetaData, Table
from sqlalchemy.orm import Mapped, mapped_column

from websessions.db.base import Base, convention


class SessionData(Base):
    """Server-side session row: the encoded payload and its timestamps."""

    __tablename__ = "sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_data: Mapped[Optional[bytes]] = mapped_column(LargeBinary, nullable=True)
    created_on: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    modified_on: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    expires_on: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<SessionData(id={self.id!r}, expires_on={self.expires_on!r})>"


def session_table(name: str, metadata: Optional[MetaData] = None) -> Table:
    """Return the session table definition under the given table name."""
    name = name.strip()
    if name == SessionData.__tablename__ and metadata is None:
        return SessionData.__table__
    if metadata is None:
        metadata = MetaData(naming_convention=convention)
    return SessionData.__table__.to_metadata(metadata, name=name)
