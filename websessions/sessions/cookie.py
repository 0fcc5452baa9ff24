"""
Cookie construction helpers.

Builds cookies from session Options and writes them onto a Starlette response.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from starlette.responses import Response

from websessions.sessions.options import Options

# RFC 2616 token: visible ASCII minus separators
_COOKIE_NAME_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")

# Expiry used to force immediate deletion on the client
EXPIRED = datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)


@dataclass
class Cookie:
    name: str
    value: str
    path: str = "/"
    domain: Optional[str] = None
    max_age: int = 0
    secure: bool = False
    http_only: bool = False
    same_site: Optional[str] = "lax"
    expires: Optional[datetime] = None


def is_cookie_name_valid(name: str) -> bool:
    """Check that a name only contains cookie-name-safe characters"""
    return bool(name) and _COOKIE_NAME_RE.match(name) is not None


def new_cookie_from_options(name: str, value: str, options: Options) -> Cookie:
    """Return a Cookie with the options set."""
    return Cookie(
        name=name,
        value=value,
        path=options.path,
        domain=options.domain,
        max_age=options.max_age,
        secure=options.secure,
        http_only=options.http_only,
        same_site=options.same_site,
    )


def new_cookie(name: str, value: str, options: Options) -> Cookie:
    """
    Build a cookie and derive its absolute expiry from options.max_age.

    Args:
        name: Cookie name (the session name)
        value: Encoded cookie value
        options: Cookie policy

    Returns:
        Cookie expiring at now + max_age, in the past when max_age < 0,
        or without expiry when max_age == 0
    """
    cookie = new_cookie_from_options(name, value, options)
    if options.max_age > 0:
        cookie.expires = datetime.now(timezone.utc) + timedelta(seconds=options.max_age)
    elif options.max_age < 0:
        cookie.expires = EXPIRED
    return cookie


def set_cookie_to_response(response: Response, cookie: Cookie) -> None:
    """Write a Set-Cookie header for cookie onto response."""
    response.set_cookie(
        key=cookie.name,
        value=cookie.value,
        max_age=cookie.max_age if cookie.max_age != 0 else None,
        expires=cookie.expires,
        path=cookie.path,
        domain=cookie.domain,
        secure=cookie.secure,
        httponly=cookie.http_only,
        samesite=cookie.same_site,
    )
