from typing import TYPE_CHECKING, Any, Dict, Optional

from websessions.sessions.options import Options

if TYPE_CHECKING:
    from websessions.sessions.registry import RequestContext
    from websessions.sessions.store import Store


class Session:
    """
    One session's identity, payload and cookie policy.

    The id is assigned by the store on first persistence and stays stable
    afterwards. values and options may be mutated freely until save().
    """

    def __init__(self, store: Optional["Store"], name: str):
        self.id: str = ""
        self.values: Dict[str, Any] = {}
        self.options: Options = Options()
        self.is_new: bool = False
        self._store = store
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    @property
    def store(self) -> Optional["Store"]:
        return self._store

    def save(self, ctx: "RequestContext") -> None:
        """Persist the session through its store and set the response cookie"""
        self._store.save(ctx, self)

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Session(name={self._name!r}, id={self.id!r}, is_new={self.is_new})>"


def new_session(store: Optional["Store"], name: str) -> Session:
    """Return an empty session bound to store and name."""
    return Session(store, name)
