"""
Column profiling and mapping suggestions.

Used while an operator builds a vendor mapping interactively. Nothing in the
normalize/diff/commit path depends on these heuristics.
"""

from typing import Any, Optional
import json
import structlog

from config import settings
from models.imports import DetectedColumn, MappingSuggestions
from models.mapping import (
    FieldMapping,
    JsonShape,
    PriceMapping,
    SpecMapping,
    StatusMapping,
    Transform,
    TransformType,
    VendorMapping,
)
from utils.transforms import is_number

logger = structlog.get_logger(__name__)

SKU_NAMES = {
    "sku", "item", "item number", "item_number", "itemnumber",
    "product code", "product_code", "productcode", "code",
}
NAME_HINTS = ("name", "description", "title")
COLLECTION_HINTS = ("collection", "series", "family", "group")
PRICE_HINTS = ("price", "msrp", "cost", "list")
DIMENSION_HINTS = ("width", "height", "depth", "length", "diameter")

UNIQUE_RATIO_THRESHOLD = 0.9


def _infer_type(value: Any) -> str:
    # bool before number: bool is an int subclass
    if isinstance(value, bool):
        return "boolean"
    if is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    return "unknown"


def _distinct_key(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=str)


def analyze_columns(
    rows: list[dict[str, Any]],
    max_samples: Optional[int] = None,
) -> list[DetectedColumn]:
    """
    Profile the union of keys over the first max_samples rows.

    Type comes from the first non-null value; null_count includes rows where
    the key is missing entirely.
    """
    if not rows:
        return []

    sample = rows[: max_samples or settings.column_sample_size]

    names: dict[str, None] = {}
    for row in sample:
        for key in row.keys():
            names.setdefault(key, None)

    columns = []
    for name in names:
        values = [row.get(name) for row in sample if row.get(name) is not None]
        columns.append(DetectedColumn(
            name=name,
            sample_values=values[:5],
            inferred_type=_infer_type(values[0]) if values else "unknown",
            unique_count=len({_distinct_key(v) for v in values}),
            null_count=len(sample) - len(values),
        ))

    logger.debug("columns_analyzed", rows_sampled=len(sample), columns=len(columns))
    return columns


# ===================
# SUGGESTIONS
# ===================

def suggest_sku_column(columns: list[DetectedColumn], sample_size: int) -> Optional[str]:
    """Exact identifier names first, then any string column that is >90% distinct."""
    candidates = [c for c in columns if c.name.lower().strip() in SKU_NAMES]
    if candidates:
        exact = next((c for c in candidates if c.name.lower().strip() == "sku"), None)
        return (exact or candidates[0]).name

    for col in columns:
        non_null = sample_size - col.null_count
        if col.inferred_type == "string" and non_null > 0:
            if col.unique_count / non_null > UNIQUE_RATIO_THRESHOLD:
                return col.name

    return None


def suggest_name_column(
    columns: list[DetectedColumn],
    exclude: Optional[str] = None,
) -> Optional[str]:
    candidates = [
        c for c in columns
        if c.name != exclude and any(hint in c.name.lower() for hint in NAME_HINTS)
    ]
    if not candidates:
        return None

    exact = next(
        (c for c in candidates if c.name.lower() in ("product name", "name")),
        None
    )
    return (exact or candidates[0]).name


def suggest_collection_column(columns: list[DetectedColumn]) -> Optional[str]:
    for col in columns:
        if any(hint in col.name.lower() for hint in COLLECTION_HINTS):
            return col.name
    return None


def suggest_price_column(columns: list[DetectedColumn]) -> Optional[str]:
    """Numeric price-like columns, MSRP/List preferred."""
    candidates = [
        c for c in columns
        if c.inferred_type == "number" and any(hint in c.name.lower() for hint in PRICE_HINTS)
    ]
    if not candidates:
        return None

    preferred = next(
        (c for c in candidates if "msrp" in c.name.lower() or "list" in c.name.lower()),
        None
    )
    return (preferred or candidates[0]).name


def suggest_status_column(columns: list[DetectedColumn]) -> Optional[str]:
    for col in columns:
        name = col.name.lower()
        if name in ("status", "state", "active") or "discontinued" in name:
            return col.name
    return None


def infer_transforms(column_name: str, sample_values: list[Any]) -> list[Transform]:
    """Propose a transform chain from a column's name and samples."""
    transforms: list[Transform] = []
    name = column_name.lower()

    if any(isinstance(v, str) and v != v.strip() for v in sample_values):
        transforms.append(Transform(type=TransformType.TRIM))

    if any(hint in name for hint in PRICE_HINTS):
        transforms.append(Transform(type=TransformType.REMOVE_COMMAS))
        transforms.append(Transform(type=TransformType.NUMERIC_PARSE))
    elif any(hint in name for hint in DIMENSION_HINTS) or "weight" in name:
        transforms.append(Transform(type=TransformType.STRIP_UNITS))
        transforms.append(Transform(type=TransformType.NUMERIC_PARSE))

    return transforms


def suggest_mapping(
    columns: list[DetectedColumn],
    sample_size: int,
    shape: JsonShape,
    vendor_code: Optional[str] = None,
) -> MappingSuggestions:
    """
    Bundle the column picks into suggestions, plus a draft mapping when the
    vendor is known. The draft is a starting point for the editor, not a
    validated mapping.
    """
    sku_column = None if shape == JsonShape.FLAT else suggest_sku_column(columns, sample_size)
    name_column = suggest_name_column(columns, exclude=sku_column)
    collection_column = suggest_collection_column(columns)
    price_column = suggest_price_column(columns)
    status_column = suggest_status_column(columns)

    transforms = {
        col.name: chain
        for col in columns
        if (chain := infer_transforms(col.name, col.sample_values))
    }

    suggestions = MappingSuggestions(
        sku_column=sku_column,
        name_column=name_column,
        collection_column=collection_column,
        price_column=price_column,
        status_column=status_column,
        transforms=transforms,
    )

    if vendor_code:
        used = {sku_column, name_column, collection_column, price_column, status_column}

        def column_mapping(column: Optional[str]) -> Optional[FieldMapping]:
            if column is None:
                return None
            return FieldMapping(column=column, transforms=transforms.get(column, []))

        suggestions.draft = VendorMapping(
            vendor_code=vendor_code,
            shape=shape,
            sku=(
                FieldMapping(type="flat_key") if shape == JsonShape.FLAT
                else column_mapping(sku_column)
            ),
            name=column_mapping(name_column),
            collection=column_mapping(collection_column),
            status=StatusMapping(column=status_column) if status_column else None,
            prices=[
                PriceMapping(
                    column=price_column,
                    tier="MSRP",
                    currency="USD",
                    transforms=transforms.get(price_column, []),
                )
            ] if price_column else [],
            specs=[
                SpecMapping(
                    column=col.name,
                    canonical_key=col.name,
                    transforms=transforms.get(col.name, []),
                )
                for col in columns
                if col.name not in used and col.name.strip()
            ],
        )

    logger.info(
        "mapping_suggested",
        sku_column=sku_column,
        name_column=name_column,
        collection_column=collection_column,
        price_column=price_column,
    )
    return suggestions
