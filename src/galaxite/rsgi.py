"""Structural types for the RSGI interface.

Only the HTTP side of RSGI is described here; galaxite does not route
websockets. Granian's own scope and protocol objects satisfy these protocols,
as do the mocks used in the test suite.
"""

from collections.abc import Iterator, Mapping
from typing import Literal, Protocol


class Headers(Protocol):
    """Read-only, case-insensitive request headers (lowercase keys)."""

    def get(self, key: str, default: str | None = None) -> str | None: ...
    def items(self) -> Iterator[tuple[str, str]]: ...


class HTTPScope(Protocol):
    proto: Literal["http"]
    http_version: Literal["1", "1.1", "2"]
    rsgi_version: str
    server: str
    client: str
    scheme: str
    method: str
    path: str
    query_string: str
    headers: Headers | Mapping[str, str]
    authority: str | None


class WebsocketScope(Protocol):
    proto: Literal["ws"]
    path: str


class HTTPProtocol(Protocol):
    async def __call__(self) -> bytes: ...
    def response_empty(self, status: int, headers: list[tuple[str, str]]) -> None: ...
    def response_str(
        self, status: int, headers: list[tuple[str, str]], body: str
    ) -> None: ...
    def response_file(
        self, status: int, headers: list[tuple[str, str]], file: str
    ) -> None: ...


class WebsocketProtocol(Protocol):
    def close(self, status: int | None = None) -> None: ...
