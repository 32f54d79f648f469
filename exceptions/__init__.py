"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    DatabaseError,
    StorageError,

    # Payload / mapping
    ShapeError,
    CatalogFileParseError,
    MappingValidationError,
    TransformError,
    RowSkipped,

    # Commit
    CommitItemError,
    CommitFatalError,
    ImportStateError,

    # Not found
    MappingNotFoundError,
    PreviewNotFoundError,
    AuditRecordNotFoundError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "DatabaseError",
    "StorageError",

    # Payload / mapping
    "ShapeError",
    "CatalogFileParseError",
    "MappingValidationError",
    "TransformError",
    "RowSkipped",

    # Commit
    "CommitItemError",
    "CommitFatalError",
    "ImportStateError",

    # Not found
    "MappingNotFoundError",
    "PreviewNotFoundError",
    "AuditRecordNotFoundError",
]
