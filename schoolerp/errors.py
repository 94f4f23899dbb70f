"""API error taxonomy.

Handlers raise these; ``schoolerp.main`` renders every one of them through the
response envelope, so clients only ever see ``{"success": false, "error": ...}``.
"""
from typing import Optional

from fastapi import status


class ApiError(Exception):
    """Base class for errors that map to a client-visible envelope."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthorized(ApiError):
    """Missing, malformed or expired credential, or an inactive identity."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authenticated"


class AccessDenied(ApiError):
    """The caller does not own the resource or lacks the role for the action.

    The message is deliberately generic: it must read the same whether the
    record is absent, belongs to another school or to another family.
    """

    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied"


class NotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"

    def __init__(self, resource: Optional[str] = None):
        super().__init__(f"{resource} not found" if resource else None)


class ValidationError(ApiError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Invalid input"


class Conflict(ApiError):
    """Terminal-state transition or uniqueness violation."""

    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class InternalError(ApiError):
    pass
