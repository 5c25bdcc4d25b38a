"""
Custom exception hierarchy for the troubleshooting service.

All application exceptions inherit from TroubleshooterError and carry a
stable ``kind`` that the API layer maps to an HTTP status.
"""

from typing import Dict, List, Optional


class TroubleshooterError(Exception):
    """Base exception for all application errors."""

    kind = "internal"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# =============================================================================
# Not Found
# =============================================================================


class NotFoundError(TroubleshooterError):
    """A referenced resource does not exist."""

    kind = "not_found"


class NodeNotFoundError(NotFoundError):
    """Node does not exist or is inactive."""

    pass


class ConnectionNotFoundError(NotFoundError):
    """Connection does not exist or is inactive."""

    pass


class SessionNotFoundError(NotFoundError):
    """Session does not exist."""

    pass


class CategoryNotFoundError(NotFoundError):
    """Category has no nodes."""

    pass


# =============================================================================
# Bad Request
# =============================================================================


class BadRequestError(TroubleshooterError):
    """The request cannot be applied to the current state."""

    kind = "bad_request"


class SessionCompletedError(BadRequestError):
    """Attempted to answer a session that already reached a conclusion."""

    pass


class InvalidAnswerError(BadRequestError):
    """Submitted connection does not leave the session's current node."""

    pass


class SessionAbandonedError(BadRequestError):
    """Session was flagged abandoned and answers on it are refused."""

    pass


# =============================================================================
# Validation
# =============================================================================


class ValidationError(TroubleshooterError):
    """Input or state validation failed.

    Carries every offending field so that clients can report all problems
    at once.
    """

    kind = "validation"

    def __init__(self, fields: List[Dict[str, str]], message: Optional[str] = None):
        self.fields = fields
        if message is None:
            message = "; ".join(f"{f['field']}: {f['message']}" for f in fields)
        super().__init__(message)

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationError":
        return cls([{"field": field, "message": message}])


# =============================================================================
# Conflict
# =============================================================================


class ConflictError(TroubleshooterError):
    """Write conflicts with existing state."""

    kind = "conflict"


class DuplicateCategoryError(ConflictError):
    """Category already has nodes."""

    pass


class SessionConflictError(ConflictError):
    """Session was modified by a concurrent request."""

    pass


# =============================================================================
# Internal
# =============================================================================


class InternalError(TroubleshooterError):
    """Server-side failure the caller cannot fix."""

    kind = "internal"


class SessionDataError(InternalError):
    """Persisted session steps are structurally invalid."""

    pass


class MissingSeedError(InternalError):
    """Required seed data (global start node) is missing."""

    pass


class ConfigurationError(InternalError):
    """Invalid or missing configuration."""

    pass
