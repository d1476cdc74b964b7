from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Literal

from galaxite.rsgi import HTTPScope


@dataclass
class MockHTTPScope:
    proto: Literal["http"] = "http"
    http_version: Literal["1", "1.1", "2"] = "1.1"
    rsgi_version: str = "1.0"
    server: str = "localhost"
    client: str = "127.0.0.1"
    scheme: str = "http"
    method: str = "GET"
    path: str = "/"
    query_string: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)
    authority: str | None = None


@dataclass
class MockWebsocketScope:
    proto: Literal["ws"] = "ws"
    path: str = "/"


class MockWebsocketProtocol:
    def __init__(self) -> None:
        self.closed_with: int | None = None

    def close(self, status: int | None = None) -> None:
        self.closed_with = status


class MockHTTPProtocol:
    """Mock protocol that serves a fixed request body and captures the response."""

    def __init__(self, body: bytes = b"") -> None:
        self.body = body
        self.response_status: int | None = None
        self.response_headers: list[tuple[str, str]] | None = None
        self.response_body: bytes | None = None
        self.response_file_path: str | None = None
        self.responses = 0

    async def __call__(self) -> bytes:
        return self.body

    def response_empty(self, status: int, headers: list[tuple[str, str]]) -> None:
        self._capture(status, headers)
        self.response_body = b""

    def response_str(
        self, status: int, headers: list[tuple[str, str]], body: str
    ) -> None:
        self._capture(status, headers)
        self.response_body = body.encode("utf-8")

    def response_file(
        self, status: int, headers: list[tuple[str, str]], file: str
    ) -> None:
        self._capture(status, headers)
        self.response_file_path = file

    def header(self, name: str) -> str | None:
        """First response header called `name`, if any."""
        for key, value in self.response_headers or []:
            if key == name:
                return value
        return None

    def header_values(self, name: str) -> list[str]:
        return [v for k, v in self.response_headers or [] if k == name]

    def _capture(self, status: int, headers: list[tuple[str, str]]) -> None:
        self.responses += 1
        self.response_status = status
        self.response_headers = list(headers)


def mock_scope(
    path: str = "/",
    method: str = "GET",
    headers: dict[str, str] | None = None,
    query_string: str = "",
) -> HTTPScope:
    return MockHTTPScope(
        path=path, method=method, headers=headers or {}, query_string=query_string
    )
