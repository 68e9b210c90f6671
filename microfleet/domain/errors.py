"""
Typed failures raised by the fleet services.

Every boundary-facing operation either returns a record or raises exactly
one of these.  ``StoreError`` is kept apart from the business errors so that
a broken connection is never reported as a rule violation.
"""


class ErrorCode:
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class FleetError(Exception):
    """Base class for all service-level errors."""

    code = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(FleetError):
    """Malformed or missing input."""

    code = ErrorCode.VALIDATION_ERROR


class NotFoundError(FleetError):
    """A referenced record does not exist."""

    code = ErrorCode.NOT_FOUND

    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} not found")
        self.resource = resource


class ConflictError(FleetError):
    """The request would break an assignment or lifecycle invariant."""

    code = ErrorCode.CONFLICT


class StoreError(FleetError):
    """Unexpected persistence failure (connectivity, unknown violation)."""

    code = ErrorCode.INTERNAL_ERROR
