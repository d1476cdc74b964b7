"""Static file provider used by the server in static mode.

Files are looked up on every request under the static directory and streamed
through the RSGI transport. When a pre-compressed sidecar (`app.js.zst`,
`app.js.br`, `app.js.gz`) sits next to a file, it is served instead if the
client accepts that encoding. Sidecars can be written ahead of time with
`galaxite.precompress.prepare` (requires the 'compress' extra).
"""

from __future__ import annotations

import asyncio
import logging
import mimetypes
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from .response import Response

logger = logging.getLogger(__name__)

type Encoding = Literal["zstd", "br", "gzip"]

DEFAULT_ENCODINGS: tuple[Encoding, ...] = ("zstd", "br", "gzip")

# Encoding name to file suffix mapping
ENCODING_SUFFIXES: dict[str, str] = {"zstd": ".zst", "br": ".br", "gzip": ".gz"}

INDEX_FILE = "index.html"


@dataclass(frozen=True, slots=True)
class FileVariant:
    """A file on disk and the content-encoding it is stored with."""

    path_str: str
    encoding: str  # "zstd", "br", "gzip", or "identity"
    size: int


def _content_type(path: Path) -> str:
    return mimetypes.guess_type(path.name)[0] or "application/octet-stream"


def _accepted_codings(header: str) -> list[tuple[str, float]]:
    """Split an Accept-Encoding value into `(coding, q)` pairs in header order.

    Codings are lowercased. A missing or unparsable `q` counts as 1.
    """
    accepted: list[tuple[str, float]] = []
    for item in header.split(","):
        coding, _, params = item.partition(";")
        coding = coding.strip().lower()
        if not coding:
            continue
        q = 1.0
        for param in params.split(";"):
            key, _, value = param.partition("=")
            if key.strip().lower() == "q":
                try:
                    q = float(value)
                except ValueError:
                    q = 1.0
        accepted.append((coding, q))
    return accepted


def _negotiate_encoding(
    accept_encoding: str | None,
    priority: dict[str, int],
    available: Iterable[str],
) -> str:
    """Pick the stored encoding the client rates highest.

    Ties go to the lower `priority` value. Anything the client refuses,
    or a missing header, means "identity".
    """
    if accept_encoding is None:
        return "identity"
    rated = dict(_accepted_codings(accept_encoding))
    wildcard = rated.pop("*", 0.0)
    ranked = [
        (rated.get(enc, wildcard), -priority.get(enc, len(priority)), enc)
        for enc in available
        if enc != "identity"
    ]
    best = max((r for r in ranked if r[0] > 0), default=None)
    return "identity" if best is None else best[2]


class StaticFiles:
    """Serves files below `directory`; paths escaping it are not found."""

    __slots__ = ("_priority", "directory", "encodings")

    def __init__(
        self,
        directory: str | Path,
        *,
        encodings: Iterable[Encoding] = DEFAULT_ENCODINGS,
    ) -> None:
        self.directory = Path(directory).resolve()
        self.encodings = tuple(encodings)
        self._priority = {enc: i for i, enc in enumerate(self.encodings)}

    async def serve(
        self, path: str, response: Response, accept_encoding: str | None = None
    ) -> None:
        """Write the file at URL `path` to `response`.

        Missing files get a 404; filesystem errors other than a missing file
        get a 500.
        """
        try:
            found = await asyncio.to_thread(self._lookup, path)
        except OSError:
            logger.exception("static: failed to read %s", path)
            response.status(500).send("500 Internal Server Error")
            return
        if found is None:
            response.status(404).send("404 Not Found")
            return

        file_path, variants = found
        selected = _negotiate_encoding(
            accept_encoding, self._priority, variants.keys()
        )
        variant = variants[selected]

        response.set_header("content-length", str(variant.size))
        if len(variants) > 1:
            response.set_header("vary", "accept-encoding")
        if selected != "identity":
            response.set_header("content-encoding", selected)
        response.status(200).file(variant.path_str, _content_type(file_path))

    def _lookup(self, path: str) -> tuple[Path, dict[str, FileVariant]] | None:
        target = (self.directory / path.lstrip("/")).resolve()
        if not target.is_relative_to(self.directory):
            logger.warning("static: rejected path outside directory: %s", path)
            return None
        if target.is_dir():
            target = target / INDEX_FILE
        try:
            stat = target.stat()
        except (FileNotFoundError, NotADirectoryError):
            return None
        if not target.is_file():
            return None

        variants = {
            "identity": FileVariant(str(target), "identity", stat.st_size),
        }
        for encoding in self.encodings:
            sidecar = Path(str(target) + ENCODING_SUFFIXES[encoding])
            try:
                size = sidecar.stat().st_size
            except FileNotFoundError:
                continue
            variants[encoding] = FileVariant(str(sidecar), encoding, size)
        return target, variants
