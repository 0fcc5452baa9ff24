from dataclasses import dataclass, replace
from typing import Optional


@dataclass
class Options:
    """Cookie policy for a session.

    max_age is in seconds: > 0 persists the cookie for that long, 0 makes it a
    browser-session cookie and < 0 deletes it immediately.
    """

    path: str = "/"
    domain: Optional[str] = None
    max_age: int = 0
    secure: bool = False
    http_only: bool = False
    same_site: Optional[str] = "lax"

    def copy(self, **changes) -> "Options":
        """Return an independent snapshot, optionally with fields changed"""
        return replace(self, **changes)
