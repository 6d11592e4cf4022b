"""Custom exceptions."""
from typing import Optional
from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    """Resource not found (or not visible to the caller)."""

    def __init__(self, detail: Optional[str] = None):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail or "Resource not found")


class UnauthorizedError(HTTPException):
    """Unauthorized exception."""

    def __init__(self, detail: Optional[str] = None):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail or "Unauthorized")


class ForbiddenError(HTTPException):
    """Forbidden exception."""

    def __init__(self, detail: Optional[str] = None):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail or "Permission denied")


class ValidationError(HTTPException):
    """Validation exception."""

    def __init__(self, detail: Optional[str] = None):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail or "Validation error")


class ConflictError(HTTPException):
    """Conflict exception."""

    def __init__(self, detail: Optional[str] = None):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail or "Resource conflict")


class ExternalServiceError(HTTPException):
    """Identity provider or another upstream dependency failed."""

    def __init__(self, detail: Optional[str] = None):
        super().__init__(status_code=status.HTTP_502_BAD_GATEWAY, detail=detail or "Upstream service unavailable")


class RecipientNotFoundError(NotFoundError):
    """No registered user matches the share recipient's email."""

    def __init__(self, email: str):
        self.email = email
        super().__init__(f'User with email "{email}" not found. Cannot share task.')


class InvalidShareTargetError(ValidationError):
    """Share recipient is the task owner."""

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail or "Cannot share a task with yourself.")
