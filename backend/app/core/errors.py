"""
Error taxonomy shared by the services and the HTTP layer.

AppError subclasses carry the HTTP status and the user-facing message.
Store-level errors (DuplicateEmail, UserNotFound) are raised by the user
directory and translated by the coordinator.
"""

from typing import Any, Optional


class AppError(Exception):
    status_code: int = 500
    default_message: str = "Something went wrong!"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self, expose_detail: bool = False) -> dict[str, Any]:
        return {"success": False, "message": self.message}


class ValidationFailed(AppError):
    status_code = 400
    default_message = "Validation failed"

    def __init__(self, errors: Optional[list[dict[str, str]]] = None, message: Optional[str] = None):
        super().__init__(message)
        self.errors = errors or []

    def to_dict(self, expose_detail: bool = False) -> dict[str, Any]:
        body = super().to_dict(expose_detail)
        body["errors"] = self.errors
        return body


class UploadRejected(AppError):
    status_code = 400
    default_message = "File upload error"


class UnsupportedMediaType(UploadRejected):
    default_message = "Only image files are allowed!"


class FileTooLarge(UploadRejected):
    def __init__(self, max_bytes: int):
        megabytes = max_bytes / (1024 * 1024)
        size = f"{megabytes:g}MB" if megabytes >= 1 else f"{max_bytes} bytes"
        super().__init__(f"File size too large. Maximum size is {size}.")
        self.max_bytes = max_bytes


class Conflict(AppError):
    status_code = 409
    default_message = "User with this email already exists"


class NotFound(AppError):
    status_code = 404
    default_message = "User not found"


class Unauthorized(AppError):
    status_code = 401
    default_message = "Access denied. No token provided."


class InvalidToken(Unauthorized):
    default_message = "Invalid token."


class InternalError(AppError):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, detail: Optional[str] = None):
        super().__init__(message)
        self.detail = detail

    def to_dict(self, expose_detail: bool = False) -> dict[str, Any]:
        body = super().to_dict(expose_detail)
        # Raw fault text only leaves the process outside production
        body["error"] = self.detail if expose_detail and self.detail else "Internal server error"
        return body


class DuplicateEmail(Exception):
    """The store rejected a write because the email is already taken"""

    def __init__(self, email: str):
        super().__init__(f"email already registered: {email}")
        self.email = email


class UserNotFound(Exception):
    def __init__(self, user_id: int):
        super().__init__(f"user {user_id} does not exist")
        self.user_id = user_id
