"""SoundBytes error taxonomy.

Services raise these; the application shell maps each to an HTTP status
through a single exception handler (see ``soundbytes.main``). Routes never
translate them by hand.

Track-key collisions have no error type: the registry resolves them by
re-fetching.
"""
from __future__ import annotations


class SoundBytesError(Exception):
    """Base class for errors that carry an HTTP status."""

    status_code: int = 500
    default_detail: str = "Internal server error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(SoundBytesError):
    """Missing or malformed caller input."""

    status_code = 400
    default_detail = "Invalid request"


class Unauthorized(SoundBytesError):
    """No verified identity (missing, invalid or expired credentials)."""

    status_code = 401
    default_detail = "Authentication required"


class Forbidden(SoundBytesError):
    """Verified identity lacks ownership of the target."""

    status_code = 403
    default_detail = "You're not allowed to do that"


class NotFound(SoundBytesError):
    """Referenced entity does not exist."""

    status_code = 404
    default_detail = "Not found"


class Conflict(SoundBytesError):
    """Uniqueness violation that is not resolved internally (username/email)."""

    status_code = 409
    default_detail = "Conflict"


class Unavailable(SoundBytesError):
    """Transient storage or collaborator failure."""

    status_code = 503
    default_detail = "Service temporarily unavailable"
