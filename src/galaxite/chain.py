"""Middleware chain.

A middleware is an async callable `(request, response, proceed)`. It either
awaits `proceed()` to hand control to the next middleware (and, after the
last one, to the handler), or writes a response and returns without
proceeding to short-circuit the request.

A middleware that writes a response *and* proceeds lets the rest of the
chain run anyway; nothing stops it. A middleware that does neither leaves
the request hanging, as no timeout is imposed.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .request import Request
    from .response import Response
    from .router import Handler

type Proceed = Callable[[], Awaitable[None]]
type Middleware = Callable[[Request, Response, Proceed], Awaitable[None]]


async def run_chain(
    middleware: Iterable[Middleware],
    handler: Handler,
    request: Request,
    response: Response,
) -> None:
    """Run `middleware` in order, then `handler`, advancing only on proceed()."""
    steps = iter(middleware)

    async def proceed() -> None:
        mw = next(steps, None)
        if mw is None:
            await handler(request, response)
            return
        await mw(request, response, proceed)

    await proceed()
