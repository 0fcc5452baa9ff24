"""
Test helper functions for common testing operations

These helpers build request contexts without an HTTP server and read back
the Set-Cookie headers a store wrote.
"""

from http.cookies import Morsel, SimpleCookie
from typing import Dict, Optional

from starlette.requests import Request
from starlette.responses import Response

from websessions.sessions import RequestContext


def build_request(cookies: Optional[Dict[str, str]] = None, path: str = "/") -> Request:
    """Build a Starlette request carrying the given cookies"""
    headers = []
    if cookies:
        cookie_header = "; ".join(f"{name}={value}" for name, value in cookies.items())
        headers.append((b"cookie", cookie_header.encode("latin-1")))
    scope = {
        "type": "http",
        "method": "GET",
        "path": path,
        "raw_path": path.encode("ascii"),
        "query_string": b"",
        "headers": headers,
    }
    return Request(scope)


def build_context(cookies: Optional[Dict[str, str]] = None) -> RequestContext:
    """Build a request context with a fresh response"""
    return RequestContext(build_request(cookies), Response())


def parse_set_cookies(headers) -> Dict[str, Morsel]:
    """Parse every Set-Cookie header into morsels keyed by cookie name"""
    if hasattr(headers, "get_list"):
        values = headers.get_list("set-cookie")
    else:
        values = headers.getlist("set-cookie")
    cookies: Dict[str, Morsel] = {}
    for header in values:
        jar = SimpleCookie()
        jar.load(header)
        for name, morsel in jar.items():
            cookies[name] = morsel
    return cookies


def response_cookies(ctx: RequestContext) -> Dict[str, Morsel]:
    """Cookies written to the context's response"""
    return parse_set_cookies(ctx.response.headers)


def next_request(ctx: RequestContext) -> RequestContext:
    """Context for a follow-up request presenting the cookies ctx received"""
    cookies = {name: morsel.value for name, morsel in response_cookies(ctx).items()}
    return build_context(cookies)


def count_log_messages(caplog, level: str = "INFO") -> int:
    """Count log messages at specific level"""
    return len([record for record in caplog.records if record.levelname == level.upper()])


def get_log_messages(caplog, level: Optional[str] = None) -> list[str]:
    """Get log messages, optionally filtered by level"""
    if level:
        return [record.getMessage() for record in caplog.records if record.levelname == level.upper()]
    return [record.getMessage() for record in caplog.records]
