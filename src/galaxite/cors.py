"""CORS response headers.

Applied by the server to every response (including 404s and static files)
before dispatch starts, so handlers can still override them.
"""

from .config import CorsOptions
from .response import Response


def cors_headers(options: CorsOptions, host: str | None) -> list[tuple[str, str]]:
    """Headers to add for a request from `host`; empty when CORS is disabled.

    The allowed origin echoes the request's host header.
    """
    if not options.enabled:
        return []
    headers: list[tuple[str, str]] = []
    if options.allows(host):
        headers.append(("access-control-allow-origin", host or "*"))
    if options.methods:
        headers.append(("access-control-allow-methods", ", ".join(options.methods)))
    headers.append(("access-control-max-age", str(options.max_age)))
    return headers


def apply_cors(options: CorsOptions, host: str | None, response: Response) -> None:
    for name, value in cors_headers(options, host):
        response.set_header(name, value)
