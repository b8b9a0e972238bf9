import re
from typing import Optional

from fastapi import HTTPException, status


class ApiError(HTTPException):
    """Base error rendered into the response envelope."""

    status_code_default = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Something went wrong"

    def __init__(self, detail: Optional[str] = None, headers: Optional[dict] = None):
        super().__init__(
            status_code=self.status_code_default,
            detail=detail or self.default_detail,
            headers=headers,
        )


class ValidationError(ApiError):
    """Exception raised when a required field is missing or malformed"""

    status_code_default = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request"


class UnauthorizedError(ApiError):
    """Exception raised when authentication is required"""

    status_code_default = status.HTTP_401_UNAUTHORIZED
    default_detail = "Unauthorized request"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenError(ApiError):
    """Exception raised when the viewer does not own the target entity"""

    status_code_default = status.HTTP_403_FORBIDDEN
    default_detail = "Forbidden"


class NotFoundError(ApiError):
    """Exception raised when an id does not resolve"""

    status_code_default = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class ConflictError(ApiError):
    """Exception raised on a duplicate unique field or an unresolved write race"""

    status_code_default = status.HTTP_409_CONFLICT
    default_detail = "Conflict"


class InternalError(ApiError):
    """Exception raised when a store or collaborator call fails unexpectedly"""

    status_code_default = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Something went wrong"


_ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")


def ensure_id(value: Optional[str], field: str) -> str:
    """Validate an entity id, raising ValidationError when missing or malformed."""
    if not value:
        raise ValidationError(f"{field} is required")
    if not _ID_PATTERN.match(value):
        raise ValidationError(f"{field} is invalid")
    return value


def ensure_text(value: Optional[str], field: str) -> str:
    """Require a non-blank string and return it stripped."""
    if value is None or not value.strip():
        raise ValidationError(f"{field} is required")
    return value.strip()
