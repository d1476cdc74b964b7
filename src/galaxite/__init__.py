from importlib.metadata import version

from .config import CorsOptions, ServerOptions
from .errors import (
    BodyParseError,
    ConfigurationError,
    DuplicateRouteError,
    GalaxiteError,
    InvalidPatternError,
    RegistrationClosedError,
    ResponseAlreadySentError,
)
from .pattern import compile_pattern
from .request import Request, RouteInfo
from .response import Response
from .router import RouteBuilder, Router
from .server import Server

__all__ = [
    "BodyParseError",
    "ConfigurationError",
    "CorsOptions",
    "DuplicateRouteError",
    "GalaxiteError",
    "InvalidPatternError",
    "RegistrationClosedError",
    "Request",
    "Response",
    "ResponseAlreadySentError",
    "RouteBuilder",
    "RouteInfo",
    "Router",
    "Server",
    "ServerOptions",
    "__version__",
    "compile_pattern",
]

__version__ = version("galaxite")
