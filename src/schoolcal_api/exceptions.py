"""School calendar API exceptions.

Every error that should reach the client as a structured JSON body is a
SchoolCalError. The HTTP status lives on the class; extra keyword
arguments are merged into the response body next to ``error``.
"""

from typing import Any

from fastapi import status


class SchoolCalError(Exception):
    """Base exception for all API errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, **extra: Any):
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)


class Unauthenticated(SchoolCalError):
    """No session, an invalid or expired session, or bad credentials."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class Forbidden(SchoolCalError):
    """Authenticated, but the caller lacks the required workspace role."""

    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied"


class NotFound(SchoolCalError):
    """Entity is absent, or not visible to the caller."""

    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class Gone(SchoolCalError):
    """Entity existed but can no longer be used.

    Raised for expired or exhausted invite links and for notifications
    whose referenced invite was deleted.
    """

    status_code = status.HTTP_410_GONE
    default_message = "No longer available"


class Conflict(SchoolCalError):
    """Request clashes with current state (duplicate member, pending invite...)."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Conflicting state"


class InvalidRequest(SchoolCalError):
    """Request passed schema validation but is still unusable."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class AlreadyExists(SchoolCalError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Already exists"
