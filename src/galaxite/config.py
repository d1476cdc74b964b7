"""Server options.

Options are frozen dataclasses; build them directly, from a nested mapping
(e.g. a parsed JSON file) or from environment variables:

    ServerOptions(cors=CorsOptions(enabled=True, origin=("example.com",)))
    ServerOptions.from_mapping({"cors": {"enabled": True}, "upload_dir": "/srv/up"})
    ServerOptions.from_env()  # GALAXITE_CORS_ENABLED=true, GALAXITE_UPLOAD_DIR=...
"""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, fields
from http import HTTPMethod
from typing import Any

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "GALAXITE_"
_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off"})


@dataclass(slots=True, frozen=True)
class CorsOptions:
    enabled: bool = False
    origin: tuple[str, ...] = ("*",)  # allowed hosts, or "*"
    methods: tuple[str, ...] = ("POST", "GET")  # advertised in Allow-Methods
    max_age: int = 86400  # seconds

    def __post_init__(self) -> None:
        # accept any iterable of strings (lists from JSON, sets, ...)
        object.__setattr__(self, "origin", _str_tuple("cors.origin", self.origin))
        object.__setattr__(self, "methods", _str_tuple("cors.methods", self.methods))
        for method in self.methods:
            if method.upper() not in HTTPMethod.__members__:
                msg = f"cors.methods contains unknown method {method!r}"
                raise ConfigurationError(msg)
        if isinstance(self.max_age, bool) or not isinstance(self.max_age, int):
            msg = f"cors.max_age must be an integer, provided {self.max_age!r}"
            raise ConfigurationError(msg)
        if self.max_age < 0:
            msg = f"cors.max_age must not be negative, provided {self.max_age}"
            raise ConfigurationError(msg)

    def allows(self, host: str | None) -> bool:
        if "*" in self.origin:
            return True
        return bool(host) and host in self.origin


@dataclass(slots=True, frozen=True)
class ServerOptions:
    cors: CorsOptions = field(default_factory=CorsOptions)
    upload_dir: str = field(default_factory=tempfile.gettempdir)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ServerOptions:
        """Build options from a nested mapping, ignoring unknown keys."""
        cors_data = data.get("cors") or {}
        if not isinstance(cors_data, Mapping):
            msg = f"cors must be a mapping, provided {type(cors_data).__name__}"
            raise ConfigurationError(msg)
        kwargs = _known(cls, {k: v for k, v in data.items() if k != "cors"}, "")
        kwargs["cors"] = CorsOptions(**_known(CorsOptions, cors_data, "cors."))
        return cls(**kwargs)

    @classmethod
    def from_env(
        cls, prefix: str = ENV_PREFIX, environ: Mapping[str, str] | None = None
    ) -> ServerOptions:
        """Build options from `<prefix>CORS_*` and `<prefix>UPLOAD_DIR`."""
        env = os.environ if environ is None else environ
        cors: dict[str, Any] = {}
        if (value := env.get(f"{prefix}CORS_ENABLED")) is not None:
            cors["enabled"] = _parse_bool(f"{prefix}CORS_ENABLED", value)
        if (value := env.get(f"{prefix}CORS_ORIGIN")) is not None:
            cors["origin"] = _parse_list(value)
        if (value := env.get(f"{prefix}CORS_METHODS")) is not None:
            cors["methods"] = _parse_list(value)
        if (value := env.get(f"{prefix}CORS_MAX_AGE")) is not None:
            try:
                cors["max_age"] = int(value)
            except ValueError:
                msg = f"{prefix}CORS_MAX_AGE must be an integer, provided {value!r}"
                raise ConfigurationError(msg) from None
        data: dict[str, Any] = {"cors": cors}
        if (value := env.get(f"{prefix}UPLOAD_DIR")) is not None:
            data["upload_dir"] = value
        return cls.from_mapping(data)


def _known(datacls: type, data: Mapping[str, Any], prefix: str) -> dict[str, Any]:
    names = {f.name for f in fields(datacls)}
    unknown = sorted(set(data) - names)
    if unknown:
        logger.warning(
            "ignoring unknown options: %s", ", ".join(prefix + k for k in unknown)
        )
    return {k: v for k, v in data.items() if k in names}


def _str_tuple(name: str, value: Iterable[str]) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    result = tuple(value)
    if not all(isinstance(v, str) for v in result):
        msg = f"{name} must contain only strings, provided {result!r}"
        raise ConfigurationError(msg)
    return result


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    msg = f"{name} must be a boolean, provided {value!r}"
    raise ConfigurationError(msg)


def _parse_list(value: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())
