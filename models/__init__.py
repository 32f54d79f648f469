"""
Pydantic models for validation and serialization.
"""

from models.base import BaseSchema
from models.catalog import (
    ProductStatus,
    ProductPrice,
    CanonicalProduct,
    price_key,
    make_product_id,
)
from models.mapping import (
    JsonShape,
    TransformType,
    Transform,
    FieldMapping,
    PriceMapping,
    StatusMapping,
    SpecMapping,
    VendorMapping,
    MappingListResponse,
    MappingValidateResponse,
    MappingTestRequest,
    MappingTestResult,
)
from models.imports import (
    ImportStatus,
    DetectedColumn,
    MappingSuggestions,
    AnalyzeRequest,
    AnalyzeOutcome,
    FieldChange,
    PriceChange,
    AddDiff,
    UpdateDiff,
    PriceChangeDiff,
    DiscontinueDiff,
    ProductDiff,
    PreviewSummary,
    ImportPreview,
    SafetyToggles,
    SkippedRow,
    PreviewRequest,
    PreviewOutcome,
    CommitRequest,
    DirectCommitRequest,
    CommitSummary,
    CommitItemErrorDetail,
    CommitResult,
    AuditChanges,
    ImportAuditRecord,
    AuditListResponse,
)

__all__ = [
    "BaseSchema",
    # Catalog
    "ProductStatus",
    "ProductPrice",
    "CanonicalProduct",
    "price_key",
    "make_product_id",
    # Mapping
    "JsonShape",
    "TransformType",
    "Transform",
    "FieldMapping",
    "PriceMapping",
    "StatusMapping",
    "SpecMapping",
    "VendorMapping",
    "MappingListResponse",
    "MappingValidateResponse",
    "MappingTestRequest",
    "MappingTestResult",
    # Imports
    "ImportStatus",
    "DetectedColumn",
    "MappingSuggestions",
    "AnalyzeRequest",
    "AnalyzeOutcome",
    "FieldChange",
    "PriceChange",
    "AddDiff",
    "UpdateDiff",
    "PriceChangeDiff",
    "DiscontinueDiff",
    "ProductDiff",
    "PreviewSummary",
    "ImportPreview",
    "SafetyToggles",
    "SkippedRow",
    "PreviewRequest",
    "PreviewOutcome",
    "CommitRequest",
    "DirectCommitRequest",
    "CommitSummary",
    "CommitItemErrorDetail",
    "CommitResult",
    "AuditChanges",
    "ImportAuditRecord",
    "AuditListResponse",
]
