"""Application error taxonomy.

Every error carries an HTTP status and a stable ``code`` string so clients can
branch without parsing the message. The exception handlers in ``main`` turn
these into ``{"message": ..., "code": ...}`` JSON bodies.
"""

from typing import Any


class AppError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, *, code: str | None = None, detail: Any = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.detail = detail

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "code": self.code}


# =============================================================================
# Client errors
# =============================================================================


class ValidationError(AppError):
    """Bad input shape, size or format."""

    status_code = 400
    code = "VALIDATION_ERROR"


class InvalidImageDimensions(ValidationError):
    status_code = 400
    code = "INVALID_IMAGE_DIMENSIONS"


class FileTooLarge(ValidationError):
    status_code = 413
    code = "FILE_TOO_LARGE"


class UnsupportedImageFormat(ValidationError):
    status_code = 415
    code = "INVALID_IMAGE_FORMAT"


class AuthError(AppError):
    """Missing session or insufficient role. Messages stay generic."""

    status_code = 401
    code = "AUTH_REQUIRED"


class Unauthenticated(AuthError):
    status_code = 401
    code = "AUTH_REQUIRED"


class SessionExpired(Unauthenticated):
    code = "SESSION_EXPIRED"


class Forbidden(AuthError):
    status_code = 403
    code = "INSUFFICIENT_ROLE"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(AppError):
    status_code = 409
    code = "CONFLICT"


class RateLimited(AppError):
    status_code = 429
    code = "RATE_LIMITED"


# =============================================================================
# Server errors
# =============================================================================


class StorageError(AppError):
    """Disk write/delete failure."""

    status_code = 500
    code = "STORAGE_ERROR"


class TranscodeError(StorageError):
    """Image could not be decoded or re-encoded."""

    code = "IMAGE_PROCESSING_ERROR"


class DatabaseError(AppError):
    status_code = 500
    code = "DATABASE_ERROR"
