"""The galaxite server: an RSGI app that routes requests to handlers.

    server = Server()
    server.route("/users/:id").get(show_user)
    server.use(log_requests)
    await server.listen(8000)

Each request is resolved, enriched with cookies (and for POST, PUT and
PATCH with its decoded body), then run through the middleware chain into the
handler. Unmatched requests get a 404 without running any middleware. When
a static directory is served, every request is answered from it instead.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, cast

from granian.server.embed import Server as GranianServer

from .body import read_body
from .chain import Middleware, run_chain
from .config import ServerOptions
from .cors import apply_cors
from .errors import BodyParseError, RegistrationClosedError
from .request import Request, parse_cookies
from .response import Response
from .router import RouteBuilder, Router
from .static import StaticFiles

if TYPE_CHECKING:
    from .rsgi import HTTPProtocol, HTTPScope, WebsocketProtocol, WebsocketScope

logger = logging.getLogger(__name__)

_BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


class Server:
    __slots__ = (
        "_granian",
        "_middleware",
        "_serve_task",
        "_static",
        "options",
        "router",
    )

    def __init__(self, options: ServerOptions | None = None) -> None:
        self.options = options or ServerOptions()
        self.router = Router()
        self._middleware: list[Middleware] = []
        self._static: StaticFiles | None = None
        self._granian: GranianServer | None = None
        self._serve_task: asyncio.Task[None] | None = None

    # --- registration ---------------------------------------------------------
    def route(self, pattern: str) -> RouteBuilder:
        """Start registering handlers for `pattern`."""
        return RouteBuilder(self.router, pattern)

    def use(self, middleware: Middleware) -> Server:
        """Append a middleware; middleware runs in registration order."""
        if self.finalized:
            msg = "cannot add middleware: server is finalized"
            raise RegistrationClosedError(msg)
        self._middleware.append(middleware)
        return self

    def serve_static(
        self, directory: str | Path, *, precompress: bool = False
    ) -> bool:
        """Answer every request from files in `directory`.

        Only takes effect if the directory exists. With `precompress`,
        compressed sidecars are written first (requires the 'compress' extra).
        Returns whether static mode is enabled.
        """
        if self.finalized:
            msg = "cannot enable static files: server is finalized"
            raise RegistrationClosedError(msg)
        path = Path(directory)
        if not path.is_dir():
            logger.warning("static directory %s does not exist, ignoring", path)
            return False
        if precompress:
            from .precompress import prepare

            prepare(path)
        self._static = StaticFiles(path)
        logger.info("serving static files from %s", self._static.directory)
        return True

    @property
    def finalized(self) -> bool:
        return self.router.finalized

    def finalize(self) -> None:
        """Freeze routes and middleware. Called by `listen`."""
        self.router.finalize()

    # --- request handling -----------------------------------------------------
    async def __rsgi__(
        self,
        scope: HTTPScope | WebsocketScope,
        proto: HTTPProtocol | WebsocketProtocol,
    ) -> None:
        if scope.proto != "http":
            logger.debug("rejecting websocket connection to %s", scope.path)
            cast("WebsocketProtocol", proto).close(403)
            return
        scope = cast("HTTPScope", scope)
        proto = cast("HTTPProtocol", proto)

        request = Request.from_rsgi(scope, proto)
        response = Response(proto)
        apply_cors(self.options.cors, request.host, response)
        try:
            await self.dispatch(request, response)
        except Exception:
            logger.exception("unhandled error for %s %s", request.method, scope.path)
            if not response.sent:
                response.status(500).send("500 Internal Server Error")

    async def dispatch(self, request: Request, response: Response) -> None:
        """Route `request` and write its response."""
        match = self.router.resolve(request)

        if self._static is not None:
            await self._static.serve(
                request.route.path, response, request.headers.get("accept-encoding")
            )
            return

        request.cookies = parse_cookies(request.headers.get("cookie"))

        if match is None:
            response.status(404).send("404 Not Found")
            return

        if request.method in _BODY_METHODS:
            try:
                request.body = await read_body(request, self.options.upload_dir)
            except BodyParseError as e:
                logger.debug("bad request body for %s: %s", request.route.path, e)
                response.status(400).send("400 Bad Request")
                return

        await run_chain(tuple(self._middleware), match.handler, request, response)

    # --- lifecycle ------------------------------------------------------------
    async def listen(
        self,
        port: int,
        on_ready: Callable[[int], object] | None = None,
        *,
        address: str = "127.0.0.1",
    ) -> None:
        """Finalize and start serving on `address:port` in the background."""
        if self._serve_task is not None:
            msg = "server is already listening"
            raise RuntimeError(msg)
        self.finalize()
        self._granian = GranianServer(
            self, address=address, port=port, log_access=True
        )
        self._serve_task = asyncio.create_task(self._serve(self._granian))
        self._serve_task.add_done_callback(_log_serve_failure)
        logger.info("listening on http://%s:%d", address, port)
        if on_ready is not None:
            on_ready(port)

    async def close(
        self, on_closed: Callable[[BaseException | None], object] | None = None
    ) -> None:
        """Stop serving; `on_closed` gets the error the server died with, if any."""
        err: BaseException | None = None
        task = self._serve_task
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                err = e
        self._serve_task = None
        self._granian = None
        logger.info("server closed")
        if on_closed is not None:
            on_closed(err)

    @staticmethod
    async def _serve(granian: GranianServer) -> None:
        try:
            await granian.serve()
        except asyncio.CancelledError:
            await granian.shutdown()


def _log_serve_failure(task: asyncio.Task[None]) -> None:
    if task.cancelled():
        return
    if (exc := task.exception()) is not None:
        logger.error("server stopped with an error", exc_info=exc)
