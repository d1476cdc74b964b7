"""Response helpers composed around an RSGI HTTP protocol.

Handlers receive a Response instead of the raw protocol. Every writer
(`send`, `html`, `json`, `csv`, `download`, `file`, `empty`) finishes the
response; writing a second one raises ResponseAlreadySentError.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .errors import ResponseAlreadySentError

if TYPE_CHECKING:
    from .rsgi import HTTPProtocol

logger = logging.getLogger(__name__)


class Response:
    __slots__ = ("_headers", "_proto", "_sent", "_status")

    def __init__(self, proto: HTTPProtocol) -> None:
        self._proto = proto
        self._status = 200
        self._headers: list[tuple[str, str]] = []
        self._sent = False

    @property
    def status_code(self) -> int:
        return self._status

    @property
    def headers(self) -> list[tuple[str, str]]:
        return list(self._headers)

    @property
    def sent(self) -> bool:
        return self._sent

    def status(self, code: int) -> Response:
        self._status = code
        return self

    def get_header(self, name: str) -> str | None:
        lowered = name.lower()
        for key, value in self._headers:
            if key == lowered:
                return value
        return None

    def set_header(self, name: str, value: str) -> Response:
        """Set a header, replacing any previous value of the same name."""
        lowered = name.lower()
        self._headers = [(k, v) for k, v in self._headers if k != lowered]
        self._headers.append((lowered, value))
        return self

    def add_header(self, name: str, value: str) -> Response:
        """Append a header, keeping previous values (e.g. set-cookie)."""
        self._headers.append((name.lower(), value))
        return self

    # --- body writers ---------------------------------------------------------
    def send(self, text: str) -> Response:
        return self._write_str("text/plain", text)

    def html(self, html: str) -> Response:
        return self._write_str("text/html", html)

    def json(self, data: Any) -> Response:
        return self._write_str("application/json", json.dumps(data))

    def csv(self, csv: str) -> Response:
        return self._write_str("text/csv", csv)

    def empty(self) -> Response:
        self._mark_sent()
        self._proto.response_empty(self._status, self._headers)
        return self

    def file(self, path: str, content_type: str | None = None) -> Response:
        """Stream a file through the transport; the caller checks it exists."""
        if content_type is not None:
            self.set_header("content-type", content_type)
        self._mark_sent()
        self._proto.response_file(self._status, self._headers, path)
        return self

    async def download(self, path: str, filename: str | None = None) -> Response:
        """Send a file as an attachment.

        A missing or unreadable file produces a 500 response instead of an
        exception.
        """
        try:
            stat = await asyncio.to_thread(os.stat, path)
            readable = await asyncio.to_thread(os.access, path, os.R_OK)
        except OSError:
            logger.exception("download failed: cannot stat %s", path)
            return self.status(500).send("500 Internal Server Error")
        if not readable or not Path(path).is_file():
            logger.error("download failed: %s is not a readable file", path)
            return self.status(500).send("500 Internal Server Error")
        name = filename or Path(path).name
        self.set_header("content-type", "application/octet-stream")
        self.set_header("content-disposition", f"attachment; filename={name}")
        self.set_header("content-length", str(stat.st_size))
        return self.file(path)

    # --- cookies --------------------------------------------------------------
    def set_cookie(
        self,
        key: str,
        value: str,
        *,
        max_age: int | None = None,
        domain: str | None = None,
        path: str | None = None,
        secure: bool = False,
        http_only: bool = False,
    ) -> Response:
        parts = [f"{key}={value}"]
        if max_age is not None:
            parts.append(f"Max-Age={max_age}")
        if domain:
            parts.append(f"Domain={domain}")
        if path:
            parts.append(f"Path={path}")
        if secure:
            parts.append("Secure")
        if http_only:
            parts.append("HttpOnly")
        return self.add_header("set-cookie", "; ".join(parts))

    def delete_cookie(self, key: str) -> Response:
        return self.set_cookie(key, "", max_age=0)

    # --- internals ------------------------------------------------------------
    def _write_str(self, content_type: str, body: str) -> Response:
        self.set_header("content-type", content_type)
        self._mark_sent()
        self._proto.response_str(self._status, self._headers, body)
        return self

    def _mark_sent(self) -> None:
        if self._sent:
            msg = "response has already been sent"
            raise ResponseAlreadySentError(msg)
        self._sent = True
