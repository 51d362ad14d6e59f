"""
Project Gallery Backend — Custom Exception Hierarchy
======================================================

What:  Application-specific exceptions for each failure class.
How:   Each exception carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with the mapped HTTP status.
Who:   Raised by services, the upload receiver and middleware.

Exception Hierarchy:
    GalleryAppError (base)
    ├── ValidationError          → 400 Bad Request (missing required input)
    ├── UploadError              → 400 Bad Request (size/count/transport)
    ├── AuthenticationError      → 401 Unauthorized
    ├── NotFoundError            → 404 Not Found
    ├── PayloadTooLargeError     → 413 Payload Too Large
    ├── DatabaseError            → 500 Internal Server Error (store failure)
    └── FileStorageError         → 500 Internal Server Error (disk write)

Anything else reaching the handlers is reported as 500 internal_server_error.
"""

from typing import Any, Dict, Optional


class GalleryAppError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged; returned only where noted)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(GalleryAppError):
    """
    Raised when client input is missing or malformed.

    HTTP 400. Used instead of FastAPI's 422 so that every input problem
    surfaces with the same status.
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class UploadError(GalleryAppError):
    """
    Raised when a multipart file payload cannot be accepted.

    When:    Too many files, a file over the size ceiling, an empty file,
             or an extension outside the allowed image types.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "File upload failed",
        filename: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if filename:
            ctx["filename"] = filename
        super().__init__(message=message, context=ctx)
        self.filename = filename


class AuthenticationError(GalleryAppError):
    """Unknown username or wrong password. HTTP 401."""

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message=message)


class NotFoundError(GalleryAppError):
    """
    Raised when a referenced project or gallery image does not exist.

    SQLAlchemy returns None for missing records; services convert that
    None into this exception so the handler can answer 404.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id is not None:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = str(resource_id)
        super().__init__(message=message, context=ctx)


class PayloadTooLargeError(GalleryAppError):
    """Request body above the configured ceiling. HTTP 413."""

    def __init__(self, limit: int, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        ctx["max_bytes"] = limit
        super().__init__(
            message=f"Request body exceeds the maximum of {limit // (1024 * 1024)}MB",
            context=ctx,
        )
        self.limit = limit


class DatabaseError(GalleryAppError):
    """
    Raised when a database statement or commit fails.

    HTTP 500. The low-level failure text travels in `context["error"]`;
    it is only returned to the client when EXPOSE_ERROR_DETAILS is on.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FileStorageError(GalleryAppError):
    """
    Raised when image bytes cannot be written to the storage directory.

    HTTP 500. Deletion failures never raise this: content cleanup is
    best-effort and only logged.
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


def database_failure(action: str, error: Exception) -> DatabaseError:
    """
    Wrap a driver/ORM exception raised while performing `action`.

    Example: database_failure("delete the project", exc)
        → "Could not delete the project. Please try again."
    """
    return DatabaseError(
        message=f"Could not {action}. Please try again.",
        context={"error": str(error), "error_type": type(error).__name__},
    )
