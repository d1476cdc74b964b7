"""Pre-compression of static files into sidecar files.

Install with: pip install "galaxite[compress]"

Writes `<file>.zst`, `<file>.br` and `<file>.gz` next to every compressible
file in a directory, at maximum compression level. The static provider
serves these sidecars to clients that accept the encoding.
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path

from .static import DEFAULT_ENCODINGS, ENCODING_SUFFIXES, Encoding

logger = logging.getLogger(__name__)

try:
    from cramjam import (
        brotli,  # ty: ignore[unresolved-import]  # fixed in cramjam >2.11
        gzip,  # ty: ignore[unresolved-import]  # fixed in cramjam >2.11
        zstd,  # ty: ignore[unresolved-import]  # fixed in cramjam >2.11
    )
except ImportError as e:
    msg = (
        "Static file pre-compression requires the 'compress' extra. "
        "Install with: pip install 'galaxite[compress]'"
    )
    raise ImportError(msg) from e


COMPRESSIBLE_SUFFIXES: frozenset[str] = frozenset(
    ".css .js .mjs .cjs .html .htm .xml .svg .json .map .txt .md .wasm".split()
)

# encoding -> (cramjam codec, highest level it accepts)
_CODECS = {"zstd": (zstd, 22), "br": (brotli, 11), "gzip": (gzip, 9)}


@dataclass(slots=True)
class PrepareStats:
    """Counters for one `prepare` run."""

    files_total: int = 0
    files_compressed: int = 0  # files with at least one usable sidecar
    variants_created: int = 0
    variants_reused: int = 0
    variants_skipped: int = 0  # sidecar would not be smaller


def _compress(data: bytes, encoding: str) -> bytes:
    codec, level = _CODECS[encoding]
    return bytes(codec.compress(data, level=level))


def _source_files(directory: Path) -> Iterator[Path]:
    sidecar_suffixes = set(ENCODING_SUFFIXES.values())
    for dirpath, _dirnames, filenames in os.walk(directory, followlinks=True):
        for filename in filenames:
            path = Path(dirpath, filename)
            if path.suffix not in sidecar_suffixes:
                yield path


def _write_sidecars(
    path: Path, encodings: tuple[Encoding, ...], stats: PrepareStats
) -> bool:
    """Make sure `path` has a sidecar per encoding; True if any is usable."""
    content = path.read_bytes()
    usable = False
    for encoding in encodings:
        sidecar = Path(str(path) + ENCODING_SUFFIXES[encoding])
        if sidecar.exists():
            if sidecar.stat().st_size < len(content):
                stats.variants_reused += 1
                usable = True
            else:
                stats.variants_skipped += 1
            continue
        compressed = _compress(content, encoding)
        if len(compressed) >= len(content):
            stats.variants_skipped += 1
            continue
        sidecar.write_bytes(compressed)
        stats.variants_created += 1
        usable = True
    return usable


def prepare(
    directory: str | Path,
    *,
    encodings: Iterable[Encoding] = DEFAULT_ENCODINGS,
    compressible_extensions: Iterable[str] = COMPRESSIBLE_SUFFIXES,
) -> PrepareStats:
    """Write compressed sidecars for every compressible file in `directory`.

    Existing sidecars are reused. A sidecar is only kept when it is smaller
    than the original file.
    """
    encodings = tuple(encodings)
    wanted = {ext.lower() for ext in compressible_extensions}
    stats = PrepareStats()

    started = time.perf_counter()
    for path in _source_files(Path(directory)):
        stats.files_total += 1
        if path.suffix.lower() in wanted and _write_sidecars(path, encodings, stats):
            stats.files_compressed += 1
    elapsed_ms = (time.perf_counter() - started) * 1000

    logger.info(
        "precompress: %d files (%d compressed), "
        "%d variants created, %d reused, %d skipped, %.1fms",
        stats.files_total,
        stats.files_compressed,
        stats.variants_created,
        stats.variants_reused,
        stats.variants_skipped,
        elapsed_ms,
    )
    return stats
