"""
Domain error kinds shared by every service.

Each error carries the HTTP status it maps to and a short machine-readable
code; the message is the user-facing reason string.
"""

from fastapi import status


class ServiceError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class Unauthorized(ServiceError):
    """The caller is not allowed to perform the operation."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "unauthorized"


class NotFound(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class FailedPrecondition(ServiceError):
    """The target exists but is not in a state that allows the operation."""

    status_code = status.HTTP_409_CONFLICT
    code = "failed_precondition"


class InvalidArgument(ServiceError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "invalid_argument"
