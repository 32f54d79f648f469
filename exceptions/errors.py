"""
Custom exception classes for the application.

Pipeline errors follow one propagation rule: row- and item-level failures
(RowSkipped, TransformError, CommitItemError) are recovered where they happen
and aggregated into results; batch-level failures (ShapeError,
MappingValidationError, CommitFatalError) stop the batch.
"""

from typing import Optional, Any
from datetime import datetime, timezone


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "MAPPING_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with existing resource (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


class StorageError(AppError):
    """Document storage read/write failed (500)."""

    def __init__(self, operation: str, key: str, message: str):
        super().__init__(
            code="STORAGE_ERROR",
            message=f"Storage {operation} of '{key}' failed: {message}",
            status_code=500,
            details={"operation": operation, "key": key}
        )


# ===================
# PAYLOAD / MAPPING ERRORS
# ===================

class ShapeError(ValidationError):
    """Payload root is neither an array of rows nor an object of rows."""

    def __init__(
        self,
        message: str = "unrecognized JSON structure",
        details: Optional[dict] = None
    ):
        super().__init__(
            code="UNRECOGNIZED_SHAPE",
            message=message,
            details=details
        )


class CatalogFileParseError(ValidationError):
    """Uploaded catalog file could not be read."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="CATALOG_FILE_PARSE_ERROR",
            message=message,
            details=details
        )


class MappingValidationError(ValidationError):
    """Mapping definition is missing required fields."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(
            code="MAPPING_INVALID",
            message=f"Mapping validation failed with {len(errors)} errors",
            details={"errors": errors}
        )


class TransformError(ValidationError):
    """A transform could not be applied to a value."""

    def __init__(self, transform: str, message: str):
        super().__init__(
            code="TRANSFORM_FAILED",
            message=f"{transform}: {message}",
            details={"transform": transform}
        )


class RowSkipped(AppError):
    """A single row could not be normalized. Soft failure, never surfaced as HTTP."""

    def __init__(self, reason: str, intrinsic_key: Optional[str] = None):
        self.reason = reason
        super().__init__(
            code="ROW_SKIPPED",
            message=reason,
            status_code=422,
            details={"key": intrinsic_key} if intrinsic_key else None
        )


# ===================
# COMMIT ERRORS
# ===================

class CommitItemError(AppError):
    """Applying one product's change failed. Recorded, batch continues."""

    def __init__(self, product_id: str, message: str):
        self.product_id = product_id
        super().__init__(
            code="COMMIT_ITEM_FAILED",
            message=message,
            status_code=500,
            details={"product_id": product_id}
        )


class CommitFatalError(AppError):
    """Catalog load or write failed. Aborts the whole commit."""

    def __init__(self, stage: str, message: str):
        self.stage = stage
        super().__init__(
            code="COMMIT_FAILED",
            message=f"Failed to {stage} products: {message}",
            status_code=500,
            details={"stage": stage}
        )


class ImportStateError(ConflictError):
    """Staged import is not in a committable state."""

    def __init__(self, preview_id: str, status: str):
        super().__init__(
            code="IMPORT_INVALID_STATE",
            message=f"Import is {status}, only staged imports can be committed",
            details={"preview_id": preview_id, "status": status}
        )


# ===================
# SPECIFIC NOT FOUND ERRORS
# ===================

class MappingNotFoundError(NotFoundError):
    """Vendor mapping not found."""

    def __init__(self, mapping_id: str):
        super().__init__(
            resource="Mapping",
            identifier=mapping_id,
            code="MAPPING_NOT_FOUND"
        )


class PreviewNotFoundError(NotFoundError):
    """Staged preview not found or expired."""

    def __init__(self, preview_id: str):
        super().__init__(
            resource="Preview",
            identifier=preview_id,
            code="PREVIEW_NOT_FOUND"
        )


class AuditRecordNotFoundError(NotFoundError):
    """Import audit record not found."""

    def __init__(self, import_id: str):
        super().__init__(
            resource="Audit record",
            identifier=import_id,
            code="AUDIT_RECORD_NOT_FOUND"
        )
