"""Route pattern compiler.

Patterns are slash-separated segments:

    /users                  literal segments match exactly
    /users/:id              `:name` captures one non-empty segment
    /files/:name?           `:name?` captures zero or one segment

Compiled patterns compare equal when their matchers are structurally equal,
regardless of parameter names: `/users/:id` and `/users/:uid` can never be
told apart at match time, so they are the same route shape.
"""

import re
from dataclasses import dataclass, field
from functools import lru_cache
from urllib.parse import unquote

from .errors import InvalidPatternError

_PARAM_NAME = re.compile(r"[A-Za-z_]\w*")
_SEGMENT = "([^/]+)"
_OPTIONAL_SEGMENT = "(?:/([^/]+))?"


def normalize_path(path: str) -> str:
    """Strip trailing slashes; the empty path is the root path."""
    return path.rstrip("/") or "/"


@dataclass(slots=True, frozen=True)
class CompiledPattern:
    """Matcher and ordered parameter names for a normalized pattern."""

    signature: str
    pattern: str = field(compare=False)
    matcher: re.Pattern[str] = field(compare=False, repr=False)
    param_names: tuple[str, ...] = field(compare=False)

    def match(self, path: str) -> dict[str, str | None] | None:
        """Match an already normalized path.

        Captured segments are percent-decoded. A capture that is absent or
        empty maps to None.
        """
        m = self.matcher.fullmatch(path)
        if m is None and path == "/":  # "/:id?" at the root
            m = self.matcher.fullmatch("")
        if m is None:
            return None
        return {
            name: unquote(value) if value else None
            for name, value in zip(self.param_names, m.groups(), strict=True)
        }


@lru_cache(maxsize=1024)
def compile_pattern(pattern: str) -> CompiledPattern:
    """Compile a route pattern into a matcher.

    Raises InvalidPatternError for patterns that do not start with "/", for
    malformed parameter names and for parameter names used twice.
    """
    if not pattern.startswith("/"):
        msg = f"pattern must start with '/', provided {pattern=}"
        raise InvalidPatternError(msg)
    pattern = normalize_path(pattern)
    if pattern == "/":
        return CompiledPattern(
            signature="/",
            pattern="/",
            matcher=re.compile("/"),
            param_names=(),
        )

    param_names: list[str] = []
    regex_parts: list[str] = []
    for seg in pattern[1:].split("/"):
        if not seg.startswith(":"):
            regex_parts.append("/" + re.escape(seg))
            continue
        name = seg[1:]
        optional = name.endswith("?")
        if optional:
            name = name[:-1]
        if _PARAM_NAME.fullmatch(name) is None:
            msg = f"invalid parameter name {seg!r} in {pattern=}"
            raise InvalidPatternError(msg)
        if name in param_names:
            msg = f"parameter {name!r} appears more than once in {pattern=}"
            raise InvalidPatternError(msg)
        param_names.append(name)
        regex_parts.append(_OPTIONAL_SEGMENT if optional else "/" + _SEGMENT)

    signature = "".join(regex_parts)
    return CompiledPattern(
        signature=signature,
        pattern=pattern,
        matcher=re.compile(signature),
        param_names=tuple(param_names),
    )
