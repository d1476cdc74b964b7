"""Request body materialization.

Supports:
- ``application/json`` -> decoded JSON value
- ``application/x-www-form-urlencoded`` -> dict, repeated keys as lists
- ``multipart/form-data`` -> dict of fields and UploadedFile entries, with
  file parts written to the upload directory (``python-multipart``)
- ``text/*`` -> str
- anything else -> the raw bytes
"""

from __future__ import annotations

import codecs
import contextlib
import json
import logging
import os
import tempfile
from dataclasses import dataclass
from typing import IO, Any

from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header

from .errors import BodyParseError
from .request import parse_query

logger = logging.getLogger(__name__)

_DECODED_TYPES = frozenset(
    {
        "application/json",
        "application/x-www-form-urlencoded",
        "multipart/form-data",
    }
)


@dataclass(frozen=True, slots=True)
class UploadedFile:
    """A file part of a multipart body, stored on disk."""

    filename: str
    content_type: str
    path: str  # temp file inside the upload dir
    size: int


async def read_body(request: Any, upload_dir: str) -> Any:
    """Read and decode the request body according to its content type.

    Raises BodyParseError when the body does not decode as declared.
    """
    raw = await request.read()
    return parse_body(raw, request.content_type, upload_dir)


def parse_body(raw: bytes, content_type: str, upload_dir: str) -> Any:
    media_type, options = parse_options_header(content_type)
    media_type = media_type.decode("latin-1").lower()
    if media_type not in _DECODED_TYPES and not media_type.startswith("text/"):
        return raw
    charset = _resolve_charset(options.get(b"charset", b"utf-8"))

    if media_type == "application/json":
        if not raw:
            return None
        try:
            return json.loads(raw.decode(charset))
        except (UnicodeDecodeError, ValueError) as e:
            msg = f"invalid JSON body: {e}"
            raise BodyParseError(msg) from e

    if media_type == "application/x-www-form-urlencoded":
        try:
            return parse_query(raw.decode(charset))
        except UnicodeDecodeError as e:
            msg = f"invalid form body: {e}"
            raise BodyParseError(msg) from e

    if media_type == "multipart/form-data":
        boundary = options.get(b"boundary")
        if not boundary:
            msg = "multipart body missing boundary parameter"
            raise BodyParseError(msg)
        return _parse_multipart(raw, boundary, charset, upload_dir)

    return raw.decode(charset, errors="replace")


def _resolve_charset(label: bytes) -> str:
    name = label.decode("latin-1").strip()
    try:
        return codecs.lookup(name).name
    except LookupError as e:
        msg = f"unknown charset: {name!r}"
        raise BodyParseError(msg) from e


def _parse_multipart(
    raw: bytes, boundary: bytes, charset: str, upload_dir: str
) -> dict[str, Any]:
    os.makedirs(upload_dir, exist_ok=True)

    fields: dict[str, Any] = {}
    headers: dict[str, str] = {}
    header_name = bytearray()
    header_value = bytearray()
    name: str | None = None
    filename: str | None = None
    data = bytearray()
    sink: IO[bytes] | None = None
    written = 0

    def on_part_begin() -> None:
        nonlocal name, filename, sink, written
        headers.clear()
        data.clear()
        name = filename = sink = None
        written = 0

    def on_header_field(chunk: bytes, start: int, end: int) -> None:
        header_name.extend(chunk[start:end])

    def on_header_value(chunk: bytes, start: int, end: int) -> None:
        header_value.extend(chunk[start:end])

    def on_header_end() -> None:
        key = header_name.decode("latin-1").strip().lower()
        if key:
            headers[key] = header_value.decode("latin-1").strip()
        header_name.clear()
        header_value.clear()

    def on_headers_finished() -> None:
        nonlocal name, filename, sink
        disposition = headers.get("content-disposition")
        if disposition is None:
            return
        _, params = parse_options_header(disposition)
        if (value := params.get(b"name")) is not None:
            name = value.decode(charset, errors="replace")
        if (value := params.get(b"filename")) is not None:
            filename = value.decode(charset, errors="replace")
            sink = tempfile.NamedTemporaryFile(
                dir=upload_dir, prefix="upload-", delete=False
            )

    def on_part_data(chunk: bytes, start: int, end: int) -> None:
        nonlocal written
        if sink is not None:
            sink.write(chunk[start:end])
            written += end - start
        else:
            data.extend(chunk[start:end])

    def on_part_end() -> None:
        if sink is not None:
            sink.close()
            if name is None:  # no field to attach it to
                os.unlink(sink.name)
                return
            _add(
                fields,
                name,
                UploadedFile(
                    filename=filename or "",
                    content_type=headers.get(
                        "content-type", "application/octet-stream"
                    ),
                    path=sink.name,
                    size=written,
                ),
            )
        elif name is not None:
            _add(fields, name, data.decode(charset, errors="replace"))

    parser = MultipartParser(
        boundary,
        {
            "on_part_begin": on_part_begin,
            "on_part_data": on_part_data,
            "on_part_end": on_part_end,
            "on_header_field": on_header_field,
            "on_header_value": on_header_value,
            "on_header_end": on_header_end,
            "on_headers_finished": on_headers_finished,
        },
    )
    try:
        parser.write(raw)
        parser.finalize()
    except MultipartParseError as e:
        if sink is not None and not sink.closed:
            sink.close()
            os.unlink(sink.name)
        _discard_uploads(fields)
        msg = f"invalid multipart body: {e}"
        raise BodyParseError(msg) from e
    logger.debug("parsed multipart body with %d fields", len(fields))
    return fields


def _discard_uploads(fields: dict[str, Any]) -> None:
    for value in fields.values():
        for item in value if isinstance(value, list) else [value]:
            if isinstance(item, UploadedFile):
                with contextlib.suppress(FileNotFoundError):
                    os.unlink(item.path)


def _add(fields: dict[str, Any], name: str, value: Any) -> None:
    existing = fields.get(name)
    if existing is None:
        fields[name] = value
    elif isinstance(existing, list):
        existing.append(value)
    else:
        fields[name] = [existing, value]
