"""Errors raised by the progression engine.

Each error carries the HTTP status a transport layer should answer with, so
callers can map them without inspecting messages.
"""


class WordpathError(Exception):
    """Base class for all engine errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(WordpathError):
    """Malformed request data."""

    status_code = 400


class NotFoundError(WordpathError):
    """A referenced learner or catalog entity does not exist."""

    status_code = 404


class AccessDeniedError(WordpathError):
    """The learner may not act on the addressed language or module."""

    status_code = 403


class InvariantViolationError(WordpathError):
    """Catalog data is inconsistent with itself."""

    status_code = 500
