"""
Vendor mapping schemas.

A mapping describes how one vendor's raw columns become canonical product
fields. Mappings are authored interactively, persisted, versioned and reused
across imports.

Required fields are deliberately optional here: completeness is checked by
NormalizerService.validate_mapping() so the editor gets every problem as a
readable message instead of a schema error.
"""

from pydantic import ConfigDict, Field, field_validator
from typing import Any, Literal, Optional
from datetime import datetime
from enum import Enum

from models.base import BaseSchema
from models.catalog import CanonicalProduct, ProductStatus


class JsonShape(str, Enum):
    """Structural shape of a raw payload."""
    FLAT = "flat"      # {"<sku>": {...row...}, ...}
    ARRAY = "array"    # [{...row...}, ...]


class TransformType(str, Enum):
    """Supported value transforms."""
    TRIM = "trim"
    UPPERCASE = "uppercase"
    LOWERCASE = "lowercase"
    NUMERIC_PARSE = "number"
    STRIP_UNITS = "strip_units"
    REMOVE_COMMAS = "remove_commas"
    REGEX_REPLACE = "regex"


# Long-form names accepted from older mapping documents
TRANSFORM_ALIASES = {
    "numeric-parse": "number",
    "numeric_parse": "number",
    "strip-units": "strip_units",
    "remove-commas": "remove_commas",
    "regex-replace": "regex",
    "regex_replace": "regex",
}


class Transform(BaseSchema):
    """Single transform step in a field's chain."""

    type: TransformType
    pattern: Optional[str] = Field(None, description="Regex pattern (regex only)")
    replacement: Optional[str] = Field(None, description="Regex replacement (regex only)")
    enum_map: Optional[dict[str, str]] = Field(None, description="Value remap table")

    @field_validator("type", mode="before")
    @classmethod
    def accept_aliases(cls, v: Any) -> Any:
        if isinstance(v, str):
            return TRANSFORM_ALIASES.get(v.strip().lower(), v.strip().lower())
        return v


class FieldMapping(BaseSchema):
    """Where a canonical field comes from in a raw row."""

    # Column names must match raw keys byte for byte, padding included
    model_config = ConfigDict(str_strip_whitespace=False)

    type: Literal["column", "flat_key"] = "column"
    column: Optional[str] = Field(None, description="Source column when type=column")
    default_value: Any = Field(None, description="Used when the source value is missing")
    required: bool = False
    transforms: list[Transform] = Field(default_factory=list)


class PriceMapping(FieldMapping):
    """Price column tagged with tier and currency."""

    tier: Optional[str] = Field(None, description="MSRP, Dealer, ...")
    currency: Optional[str] = Field(None, description="USD, CAD, ...")

    @field_validator("tier", "currency")
    @classmethod
    def strip_labels(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if isinstance(v, str) else v


class StatusMapping(FieldMapping):
    """Status column with an optional vendor-value remap table."""

    enum_map: Optional[dict[str, ProductStatus]] = None


class SpecMapping(BaseSchema):
    """Free-form spec column stored under a canonical key."""

    model_config = ConfigDict(str_strip_whitespace=False)

    column: str = Field(..., min_length=1)
    canonical_key: str = Field(..., alias="as", min_length=1)
    transforms: list[Transform] = Field(default_factory=list)


class VendorMapping(BaseSchema):
    """
    Complete vendor mapping definition.

    id/version/timestamps are assigned by MappingService on save.
    """

    id: Optional[str] = None
    vendor_code: str = Field(..., min_length=1)
    display_name: Optional[str] = Field(None, description="Label such as 'Lib&Co June 2025'")
    version: int = Field(default=1, ge=1)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    shape: Optional[JsonShape] = Field(None, description="Override auto-detection")

    sku: Optional[FieldMapping] = None
    name: Optional[FieldMapping] = None
    collection: Optional[FieldMapping] = None
    status: Optional[StatusMapping] = None

    prices: list[PriceMapping] = Field(default_factory=list)
    specs: list[SpecMapping] = Field(default_factory=list)


class MappingListResponse(BaseSchema):
    """List of saved mappings."""

    data: list[VendorMapping]
    total: int


class MappingValidateResponse(BaseSchema):
    """Result of the pre-flight mapping check."""

    valid: bool
    errors: list[str] = Field(default_factory=list)


class MappingTestRequest(BaseSchema):
    """Dry-run a mapping against a payload."""

    data: Any
    mapping: VendorMapping
    max_rows: Optional[int] = Field(None, ge=1, le=500)


class MappingTestResult(BaseSchema):
    """Dry-run outcome: validation errors or normalized samples."""

    success: bool
    samples: list[CanonicalProduct] = Field(default_factory=list)
    total_normalized: int = 0
    skipped: int = 0
    errors: list[str] = Field(default_factory=list)
