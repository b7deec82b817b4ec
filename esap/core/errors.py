"""
Error taxonomy shared by every service.

Services raise these; the API layer turns them into the response envelope
`{"success": false, "error": message}` with the matching HTTP status.
Anything that is not an EsapError is treated as unexpected and never has its
text shown to the caller.
"""

from __future__ import annotations


class EsapError(Exception):
    """Base class for errors with a caller-safe message."""

    status_code: int = 500
    default_message: str = "Unexpected error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_envelope(self) -> dict[str, object]:
        return {"success": False, "error": self.message}


class ValidationError(EsapError):
    """A required field is missing or malformed."""
    status_code = 400
    default_message = "Invalid request"


class Unauthenticated(EsapError):
    """No usable credential was presented."""
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(EsapError):
    """Authenticated, but the role is not allowed to do this."""
    status_code = 403
    default_message = "Forbidden"


class NotFound(EsapError):
    """The addressed record does not exist (for this caller)."""
    status_code = 404
    default_message = "Not found"


class InvalidState(EsapError):
    """The transition is not legal from the record's current status."""
    status_code = 409
    default_message = "Invalid state transition"


class Conflict(EsapError):
    """A uniqueness constraint would be violated."""
    status_code = 409
    default_message = "Already exists"


class InvalidPin(EsapError):
    """Wrong, unknown, or expired reset PIN. Deliberately uninformative."""
    status_code = 400
    default_message = "Invalid or expired PIN"


class Unexpected(EsapError):
    """Store or infrastructure failure."""
    status_code = 500
    default_message = "Unexpected error"


# Raised by the token service; the guard converts it to Unauthenticated.
class InvalidToken(Exception):
    """Token signature, structure, or expiry check failed."""
    pass
