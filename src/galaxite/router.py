"""Route registry and request router.

Routes are kept in insertion order and resolved by linear scan: the first
route whose method matches and whose pattern matches the normalized path
wins. Overlapping patterns therefore resolve by registration order, so
`/users/:id` registered before `/users/active` shadows the literal route.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from http import HTTPMethod
from typing import TYPE_CHECKING

from .errors import DuplicateRouteError, RegistrationClosedError
from .pattern import CompiledPattern, compile_pattern, normalize_path
from .request import RouteInfo, parse_query

if TYPE_CHECKING:
    from .request import Request
    from .response import Response

logger = logging.getLogger(__name__)

type Handler = Callable[[Request, Response], Awaitable[None]]


@dataclass(slots=True, frozen=True)
class Route:
    method: HTTPMethod
    compiled: CompiledPattern
    handler: Handler

    @property
    def pattern(self) -> str:
        return self.compiled.pattern

    @property
    def param_names(self) -> tuple[str, ...]:
        return self.compiled.param_names


@dataclass(slots=True, frozen=True)
class Match:
    route: Route
    params: dict[str, str | None]

    @property
    def handler(self) -> Handler:
        return self.route.handler


class Router:
    __slots__ = ("_finalized", "_routes")
    _routes: list[Route]
    _finalized: bool

    def __init__(self) -> None:
        self._routes = []
        self._finalized = False

    @property
    def routes(self) -> tuple[Route, ...]:
        return tuple(self._routes)

    @property
    def finalized(self) -> bool:
        return self._finalized

    def finalize(self) -> None:
        """Freeze the registry. Idempotent."""
        self._finalized = True

    def register(self, method: str, pattern: str, handler: Handler) -> Route:
        """Compile `pattern` and append a route for `method`.

        Raises DuplicateRouteError if a route with the same method and a
        structurally equal pattern exists, and RegistrationClosedError once
        the router is finalized.
        """
        if self._finalized:
            msg = f"cannot register {method} {pattern}: router is finalized"
            raise RegistrationClosedError(msg)
        try:
            verb = HTTPMethod(method.upper())
        except ValueError:
            msg = f"unknown HTTP method {method!r}"
            raise ValueError(msg) from None
        compiled = compile_pattern(pattern)
        for r in self._routes:
            if r.method is verb and r.compiled == compiled:
                raise DuplicateRouteError(verb.value, compiled.pattern)
        route = Route(method=verb, compiled=compiled, handler=handler)
        self._routes.append(route)
        logger.debug("registered %s %s", verb.value, compiled.pattern)
        return route

    def match(self, method: str, path: str) -> Match | None:
        """Find the first route for `method` matching a normalized `path`."""
        method = method.upper()
        for route in self._routes:
            if route.method != method:
                continue
            params = route.compiled.match(path)
            if params is not None:
                return Match(route=route, params=params)
        return None

    def resolve(self, request: Request) -> Match | None:
        """Route a request, recording path and query on `request.route`.

        The route info is written whether or not a route matches, so later
        stages can read `route.path` and `route.query` on a 404.
        """
        path, _, query_string = request.raw_path.partition("?")
        path = normalize_path(path)
        request.route = RouteInfo(path=path, query=parse_query(query_string))
        match = self.match(request.method, path)
        if match is None:
            logger.debug("no route for %s %s", request.method, path)
            return None
        request.route.params = match.params
        request.route.pattern = match.route.pattern
        return match


class RouteBuilder:
    """Registers handlers for one pattern, one method at a time.

        server.route("/users/:id").get(show_user).put(update_user)
    """

    __slots__ = ("_pattern", "_router")

    def __init__(self, router: Router, pattern: str) -> None:
        self._router = router
        self._pattern = pattern

    def method(self, method: str, handler: Handler) -> RouteBuilder:
        self._router.register(method, self._pattern, handler)
        return self

    def get(self, handler: Handler) -> RouteBuilder:
        return self.method("GET", handler)

    def post(self, handler: Handler) -> RouteBuilder:
        return self.method("POST", handler)

    def put(self, handler: Handler) -> RouteBuilder:
        return self.method("PUT", handler)

    def patch(self, handler: Handler) -> RouteBuilder:
        return self.method("PATCH", handler)

    def delete(self, handler: Handler) -> RouteBuilder:
        return self.method("DELETE", handler)

    def head(self, handler: Handler) -> RouteBuilder:
        return self.method("HEAD", handler)

    def options(self, handler: Handler) -> RouteBuilder:
        return self.method("OPTIONS", handler)
