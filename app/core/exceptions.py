# app/core/exceptions.py
from typing import Any


class AppException(Exception):
    def __init__(
        self,
        message: str,
        status_code: int = 400,
        error_code: str = "BUSINESS_ERROR",
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)


class ValidationFailed(AppException):
    def __init__(self, message: str):
        super().__init__(message=message, status_code=400, error_code="VALIDATION_FAILED")


class NotFoundError(AppException):
    def __init__(self, message: str = "Not found"):
        super().__init__(message=message, status_code=404, error_code="NOT_FOUND")


class ConflictError(AppException):
    def __init__(self, message: str):
        super().__init__(message=message, status_code=409, error_code="CONFLICT")


class AuthenticationError(AppException):
    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(message=message, status_code=401, error_code="AUTH_FAILED")


class AccessDeniedError(AppException):
    """Named AccessDeniedError to avoid shadowing the built-in PermissionError."""

    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message=message, status_code=403, error_code="PERMISSION_DENIED")


class AdminNotConfiguredError(AppException):
    def __init__(self):
        super().__init__(
            message="Admin credentials not configured",
            status_code=500,
            error_code="ADMIN_NOT_CONFIGURED",
        )
