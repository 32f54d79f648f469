"""
Import pipeline schemas: column analysis, diff preview, commit results and
audit records.
"""

from pydantic import ConfigDict, Field
from typing import Annotated, Any, Literal, Optional, Union
from enum import Enum

from models.base import BaseSchema
from models.catalog import CanonicalProduct
from models.mapping import JsonShape, Transform, VendorMapping


class ImportStatus(str, Enum):
    """Lifecycle of a staged import."""
    STAGED = "staged"
    COMMITTING = "committing"
    COMMITTED = "committed"
    FAILED = "failed"


# ===================
# COLUMN ANALYSIS
# ===================

class DetectedColumn(BaseSchema):
    """Profile of one raw column over the sampled rows."""

    # Raw key as it appears in the rows
    model_config = ConfigDict(str_strip_whitespace=False)

    name: str
    sample_values: list[Any] = Field(default_factory=list, max_length=5)
    inferred_type: Literal["string", "number", "boolean", "unknown"] = "unknown"
    unique_count: int = 0
    null_count: int = 0


class MappingSuggestions(BaseSchema):
    """Heuristic column picks used to pre-fill the mapping editor."""

    model_config = ConfigDict(str_strip_whitespace=False)

    sku_column: Optional[str] = None
    name_column: Optional[str] = None
    collection_column: Optional[str] = None
    price_column: Optional[str] = None
    status_column: Optional[str] = None
    transforms: dict[str, list[Transform]] = Field(default_factory=dict)
    draft: Optional[VendorMapping] = None


class AnalyzeRequest(BaseSchema):
    data: Any
    vendor_code: Optional[str] = None


class AnalyzeOutcome(BaseSchema):
    """Shape + column profile of an uploaded payload."""

    success: bool
    shape: Optional[JsonShape] = None
    total_rows: int = 0
    columns: list[DetectedColumn] = Field(default_factory=list)
    suggestions: Optional[MappingSuggestions] = None
    data: Any = Field(None, description="Parsed payload, returned for file uploads")
    errors: list[str] = Field(default_factory=list)


# ===================
# DIFF
# ===================

class FieldChange(BaseSchema):
    """One differing field; spec keys appear as 'specs.<key>'."""

    field: str
    old_value: Any = None
    new_value: Any = None


class PriceChange(BaseSchema):
    """New or changed price for one tier:currency."""

    tier: str
    currency: str
    old_amount: Optional[float] = None
    new_amount: float
    change_percent: Optional[float] = None


class AddDiff(BaseSchema):
    type: Literal["add"] = "add"
    product_id: str
    incoming: CanonicalProduct


class UpdateDiff(BaseSchema):
    """Field-level update; price deltas ride along as an annotation."""

    type: Literal["update"] = "update"
    product_id: str
    incoming: CanonicalProduct
    existing: CanonicalProduct
    changes: list[FieldChange] = Field(default_factory=list)
    price_changes: list[PriceChange] = Field(default_factory=list)


class PriceChangeDiff(BaseSchema):
    type: Literal["price_change"] = "price_change"
    product_id: str
    incoming: CanonicalProduct
    existing: CanonicalProduct
    price_changes: list[PriceChange] = Field(default_factory=list)


class DiscontinueDiff(BaseSchema):
    type: Literal["discontinue"] = "discontinue"
    product_id: str
    existing: CanonicalProduct


ProductDiff = Annotated[
    Union[AddDiff, UpdateDiff, PriceChangeDiff, DiscontinueDiff],
    Field(discriminator="type"),
]


class PreviewSummary(BaseSchema):
    """Bucket counts. new + updated + price_only + unchanged == total_incoming."""

    new_products: int = 0
    updated_products: int = 0
    price_only_changes: int = 0
    to_discontinue: int = 0
    unchanged: int = 0


class ImportPreview(BaseSchema):
    """Bucketed diff of an incoming batch against the vendor's catalog."""

    vendor_code: str
    effective_from: str
    total_incoming: int = 0
    total_existing: int = 0
    adds: list[AddDiff] = Field(default_factory=list)
    updates: list[UpdateDiff] = Field(default_factory=list)
    price_changes: list[PriceChangeDiff] = Field(default_factory=list)
    discontinuations: list[DiscontinueDiff] = Field(default_factory=list)
    summary: PreviewSummary = Field(default_factory=PreviewSummary)


class SafetyToggles(BaseSchema):
    """User-selected policy flags narrowing what a commit may change."""

    prices_only: bool = False
    specs_only: bool = False
    dont_change_collections: bool = False
    mark_missing_as_discontinued: bool = False
    tag_new_as_introductions: bool = False


class SkippedRow(BaseSchema):
    """Row the normalizer could not turn into a product."""

    index: int
    intrinsic_key: Optional[str] = None
    reason: str


# ===================
# REQUESTS / OUTCOMES
# ===================

class PreviewRequest(BaseSchema):
    """Normalize + diff a payload. Supply a mapping inline or by id."""

    data: Any
    vendor_code: str = Field(..., min_length=1)
    mapping: Optional[VendorMapping] = None
    mapping_id: Optional[str] = None
    effective_from: Optional[str] = Field(None, description="ISO date, defaults to today")
    safety_toggles: SafetyToggles = Field(default_factory=SafetyToggles)
    ignore_fields: list[str] = Field(default_factory=list)


class PreviewOutcome(BaseSchema):
    """Preview result; errors are populated instead of raising."""

    success: bool
    preview_id: Optional[str] = None
    status: Optional[ImportStatus] = None
    preview: Optional[ImportPreview] = None
    skipped_rows: list[SkippedRow] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


class CommitRequest(BaseSchema):
    """Commit a staged preview."""

    preview_id: str = Field(..., min_length=1)
    imported_by: str = Field(..., min_length=1)
    notes: Optional[str] = None


class DirectCommitRequest(PreviewRequest):
    """Preview and commit in one call."""

    imported_by: str = Field(..., min_length=1)
    notes: Optional[str] = None


# ===================
# COMMIT / AUDIT
# ===================

class CommitSummary(BaseSchema):
    products_added: int = 0
    products_updated: int = 0
    prices_updated: int = 0
    products_discontinued: int = 0
    errors: int = 0


class CommitItemErrorDetail(BaseSchema):
    product_id: str
    error: str


class CommitResult(BaseSchema):
    """Outcome of a commit. success is False on any item error or write failure."""

    success: bool
    import_id: str
    timestamp: str
    summary: CommitSummary = Field(default_factory=CommitSummary)
    errors: list[CommitItemErrorDetail] = Field(default_factory=list)


class AuditChanges(BaseSchema):
    added: list[str] = Field(default_factory=list)
    updated: list[str] = Field(default_factory=list)
    prices_changed: list[str] = Field(default_factory=list)
    discontinued: list[str] = Field(default_factory=list)


class ImportAuditRecord(BaseSchema):
    """Write-once record of a commit."""

    model_config = ConfigDict(frozen=True)

    id: str
    vendor_code: str
    timestamp: str
    imported_by: str
    effective_from: str
    notes: Optional[str] = None
    safety_toggles: SafetyToggles
    success: bool
    summary: CommitSummary
    changes: AuditChanges


class AuditListResponse(BaseSchema):
    data: list[ImportAuditRecord]
    total: int
