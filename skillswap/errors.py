"""
Exception hierarchy for the SkillSwap backend.

All domain failures inherit from SkillSwapError. Each subclass carries the
HTTP status and error code the API layer reports for it.
"""


class SkillSwapError(Exception):
    """Base exception for all SkillSwap errors."""
    status_code = 500
    error = "skillswap_error"


class NotFoundError(SkillSwapError):
    """A referenced user, request, conversation, session or record does not exist."""
    status_code = 404
    error = "not_found"


class PermissionDeniedError(SkillSwapError):
    """The acting user may not perform this operation."""
    status_code = 403
    error = "permission_denied"


class ConflictError(SkillSwapError):
    """The operation clashes with current state (duplicate, invalid status transition)."""
    status_code = 409
    error = "conflict"


class ValidationFailedError(SkillSwapError):
    """Input is well-formed but violates a domain rule."""
    status_code = 422
    error = "validation_failed"
