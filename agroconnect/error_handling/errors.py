"""
Error taxonomy for marketplace operations.

Every failure the lifecycle managers raise maps to exactly one HTTP status.
"""


class LifecycleError(Exception):
    """Base class for expected, caller-facing failures."""

    status_code = 500
    kind = "error"

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFoundError(LifecycleError):
    """Entity does not exist (or was soft-deleted)."""
    status_code = 404
    kind = "not_found"


class InvalidStateError(LifecycleError):
    """Operation is not valid for the entity's current status or flags."""
    status_code = 409
    kind = "invalid_state"


class ForbiddenError(LifecycleError):
    """Requester lacks the role required for the operation."""
    status_code = 403
    kind = "forbidden"


class InvalidArgumentError(LifecycleError):
    """Malformed input, e.g. non-positive price or unknown status value."""
    status_code = 400
    kind = "invalid_argument"


class AuthenticationError(LifecycleError):
    """Missing, invalid or expired credentials."""
    status_code = 401
    kind = "unauthorized"
