"""Exceptions raised by galaxite.

Registration-time errors are raised synchronously to the caller. Request-time
failures are turned into responses by the server and never reach Granian.
"""


class GalaxiteError(Exception):
    """Base class for every galaxite error."""


class InvalidPatternError(GalaxiteError, ValueError):
    """A route pattern could not be compiled."""


class DuplicateRouteError(GalaxiteError, ValueError):
    """A route with the same method and an equivalent pattern already exists."""

    def __init__(self, method: str, pattern: str) -> None:
        self.method = method
        self.pattern = pattern
        super().__init__(f"Duplicate endpoint found: {method} {pattern}")


class RegistrationClosedError(GalaxiteError, RuntimeError):
    """Routes or middleware were registered after the server was finalized."""


class ResponseAlreadySentError(GalaxiteError, RuntimeError):
    """A second response was written for the same request."""


class BodyParseError(GalaxiteError, ValueError):
    """The request body could not be decoded for its declared content type."""


class ConfigurationError(GalaxiteError, ValueError):
    """Server options are invalid."""
