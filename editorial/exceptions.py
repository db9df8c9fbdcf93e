"""
Custom Exception Classes for the Editorial Console

This module defines custom exceptions for better error handling and
consistent error responses across the application.
"""

from enum import Enum
from typing import Any

from fastapi import status


class ErrorCode(str, Enum):
    """Machine-readable error codes returned in every error envelope"""

    VALIDATION_FAILED = "VALIDATION_FAILED"
    SLUG_CONFLICT = "SLUG_CONFLICT"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    STORAGE_FAILED = "STORAGE_FAILED"
    RENAME_FAILED = "RENAME_FAILED"
    UPLOAD_FAILED = "UPLOAD_FAILED"
    UPLOAD_INVALID_TYPE = "UPLOAD_INVALID_TYPE"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class EditorialError(Exception):
    """Base exception class for all editorial exceptions"""

    error_code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


# ============================================================================
# Validation & Business Logic Exceptions
# ============================================================================


class ValidationError(EditorialError):
    """Raised when a required field is missing or invalid; blocks the save"""

    error_code = ErrorCode.VALIDATION_FAILED

    def __init__(self, message: str, field: str | None = None, details: dict[str, Any] | None = None):
        error_details = details or {}
        if field:
            error_details["field"] = field
        super().__init__(message=message, status_code=status.HTTP_400_BAD_REQUEST, details=error_details)


class ConflictError(EditorialError):
    """Raised when a slug is already held by another record"""

    error_code = ErrorCode.SLUG_CONFLICT

    def __init__(self, collection: str, slug: str, holders: list[str] | None = None):
        super().__init__(
            message="This slug is already taken. Please change the title or the slug manually.",
            status_code=status.HTTP_409_CONFLICT,
            details={"collection": collection, "slug": slug, "holders": holders or []},
        )


# ============================================================================
# Resource Not Found Exceptions
# ============================================================================


class ResourceNotFoundError(EditorialError):
    """Base class for resource not found errors"""

    error_code = ErrorCode.RESOURCE_NOT_FOUND

    def __init__(self, resource_type: str, resource_id: Any | None = None):
        message = f"{resource_type} not found"
        if resource_id is not None:
            message = f"{resource_type} with key '{resource_id}' not found"
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class RecordNotFoundError(ResourceNotFoundError):
    """Raised when no document exists at a key"""

    def __init__(self, key: Any | None = None):
        super().__init__(resource_type="Record", resource_id=key)


class CollectionNotFoundError(ResourceNotFoundError):
    """Raised when a collection name is not registered"""

    def __init__(self, name: str):
        super().__init__(resource_type="Collection", resource_id=name)


# ============================================================================
# Storage Exceptions
# ============================================================================


class StorageError(EditorialError):
    """Raised when the repository or blob store fails"""

    error_code = ErrorCode.STORAGE_FAILED

    def __init__(self, message: str = "A storage error occurred", operation: str | None = None):
        details = {"operation": operation} if operation else {}
        super().__init__(message=message, status_code=status.HTTP_503_SERVICE_UNAVAILABLE, details=details)


class RenameError(StorageError):
    """Raised when moving a record to a new key fails part-way"""

    error_code = ErrorCode.RENAME_FAILED

    def __init__(self, old_key: str, new_key: str, step: str):
        super().__init__(message=f"Failed to rename record '{old_key}' to '{new_key}'", operation="rename")
        self.old_key = old_key
        self.new_key = new_key
        self.step = step
        self.details.update({"old_key": old_key, "new_key": new_key, "step": step})


# ============================================================================
# File & Media Exceptions
# ============================================================================


class FileUploadError(EditorialError):
    """Raised when file upload fails validation"""

    error_code = ErrorCode.UPLOAD_FAILED

    def __init__(self, message: str = "File upload failed", filename: str | None = None):
        details = {"filename": filename} if filename else {}
        super().__init__(message=message, status_code=status.HTTP_400_BAD_REQUEST, details=details)


class InvalidFileTypeError(EditorialError):
    """Raised when uploaded file type is not allowed"""

    error_code = ErrorCode.UPLOAD_INVALID_TYPE

    def __init__(self, file_type: str, allowed_types: list[str]):
        super().__init__(
            message=f"File type '{file_type}' is not allowed",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"file_type": file_type, "allowed_types": allowed_types},
        )
