"""Domain error taxonomy.

Each error carries the HTTP status it maps to; the global handler in
``mindbreaker.middleware.error_handler`` renders them as ``{"error": message}``.
"""

from __future__ import annotations


class MindBreakerError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthorized(MindBreakerError):
    """No valid session."""

    status_code = 401
    default_message = "Unauthorized"


class Forbidden(MindBreakerError):
    """Authenticated, but lacking the required capability."""

    status_code = 403
    default_message = "Forbidden"


class InvalidInput(MindBreakerError):
    """Bad type, action, missing field, or a transition the current state does not allow."""

    status_code = 400
    default_message = "Invalid input"


class NotFound(MindBreakerError):
    status_code = 404
    default_message = "Not found"


class Conflict(MindBreakerError):
    """The record changed between read and write."""

    status_code = 409
    default_message = "Record was modified concurrently"


class PersistenceError(MindBreakerError):
    """Datastore read/write failure; the message is the datastore's own."""

    status_code = 500
