"""
School Directory Backend — Custom Exception Hierarchy
=======================================================

What:  Application-specific exceptions for the failure modes of the API.
Why:   Each exception maps to exactly one HTTP status and response shape, so
       services raise domain errors and never build HTTP responses.
How:   Every exception carries a user-facing `message`, an optional
       `details` string that names the failing subsystem, and a server-side
       `context` dict that is logged but never returned.
Who:   Raised by services; caught by the global handlers in main.py.

Exception Hierarchy:
    SchoolDirectoryError (base)
    ├── ValidationError      → 400 Bad Request (rejected before any write)
    ├── NotFoundError        → 404 Not Found
    ├── StorageWriteError    → 500 (Blob Store write/delete failed)
    └── RecordStoreError     → 500 (database operation failed)

Propagation policy:
    StorageWriteError and RecordStoreError raised by the primary effect of an
    operation reach the client. The same errors raised by cleanup steps
    (stale or orphaned image deletion) are logged by the caller and dropped.
"""

from typing import Any, Dict, Optional


class SchoolDirectoryError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        details:  Optional secondary message returned as `details`
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        details: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.details = details
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(SchoolDirectoryError):
    """
    Raised when client input fails validation.

    When:    Missing image, wrong image type, oversized image, malformed
             contact/email, empty required field.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        details: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, details=details, context=ctx)
        self.field = field


class NotFoundError(SchoolDirectoryError):
    """
    Raised when a requested school does not exist.

    SQLAlchemy returns None for missing rows; the service layer converts that
    None into this exception so the handler can answer 404.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class StorageWriteError(SchoolDirectoryError):
    """
    Raised when a Blob Store write or delete fails.

    When:    Disk full, permission denied, S3 client error, endpoint unreachable.
    HTTP:    500 Internal Server Error (primary path only)
    """

    def __init__(
        self,
        message: str = "Failed to save image",
        details: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, details=details, context=context)


class RecordStoreError(SchoolDirectoryError):
    """
    Raised when a database operation fails.

    When:    Connection lost, constraint violation, commit failure.
    HTTP:    500 Internal Server Error, with the driver message as `details`
    """

    def __init__(
        self,
        message: str = "A database error occurred",
        details: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, details=details, context=context)
