"""Per-request context.

A Request is created fresh for every RSGI call and discarded once the
response is written. The router writes `route` onto it, the server adds
`cookies` and, for state-changing methods, `body`.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import parse_qsl

from .rsgi import Headers, HTTPProtocol, HTTPScope

type QueryValue = str | list[str]


@dataclass(slots=True)
class RouteInfo:
    """Where a request was routed.

    `params` is empty and `pattern` is "" when no route matched.
    """

    path: str = "/"
    query: dict[str, QueryValue] = field(default_factory=dict)
    params: dict[str, str | None] = field(default_factory=dict)
    pattern: str = ""


@dataclass(slots=True)
class Request:
    method: str
    raw_path: str
    headers: Headers | Mapping[str, str] = field(default_factory=dict)
    client: str = ""
    scheme: str = "http"
    route: RouteInfo = field(default_factory=RouteInfo)
    cookies: dict[str, str] = field(default_factory=dict)
    body: Any = None
    scope: HTTPScope | None = field(default=None, repr=False)
    proto: HTTPProtocol | None = field(default=None, repr=False)

    @classmethod
    def from_rsgi(cls, scope: HTTPScope, proto: HTTPProtocol) -> "Request":
        raw_path = scope.path
        if scope.query_string:
            raw_path = f"{raw_path}?{scope.query_string}"
        return cls(
            method=scope.method.upper(),
            raw_path=raw_path,
            headers=scope.headers,
            client=scope.client,
            scheme=scope.scheme,
            scope=scope,
            proto=proto,
        )

    @property
    def host(self) -> str | None:
        return self.headers.get("host")

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type") or ""

    async def read(self) -> bytes:
        """Read the whole request body from the transport."""
        if self.proto is None:
            return b""
        return await self.proto()


def parse_query(query_string: str) -> dict[str, QueryValue]:
    """Parse a query string; repeated keys collect into a list."""
    query: dict[str, QueryValue] = {}
    for key, value in parse_qsl(query_string, keep_blank_values=True):
        existing = query.get(key)
        if existing is None:
            query[key] = value
        elif isinstance(existing, list):
            existing.append(value)
        else:
            query[key] = [existing, value]
    return query


def parse_cookies(header: str | None) -> dict[str, str]:
    """Parse a Cookie header value into a name-value dict."""
    if not header:
        return {}
    cookies: dict[str, str] = {}
    for pair in header.split(";"):
        pair = pair.strip()
        if "=" in pair:
            key, _, value = pair.partition("=")
            cookies[key.strip()] = value.strip()
    return cookies
