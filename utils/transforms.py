"""
Value transforms for vendor data normalization.

Every function here is pure. A transform chain is a left fold applied in
declared order; a None value skips the chain entirely.

Examples:
    "$1,299.00"  --number-->        1299.0
    "12 in"      --strip_units-->   "12"
    "  Oak  "    --trim,uppercase-> "OAK"
"""

import re
from typing import Any, Iterable, Optional

from exceptions import TransformError
from models.catalog import ProductStatus
from models.mapping import Transform, TransformType


UNIT_TOKENS = ("in", "cm", "mm", "ft", "m", "lb", "kg", "oz", "g")

# Unit must follow a digit or whitespace so "Drum" or "Large" survive
_TRAILING_UNIT = re.compile(
    r"(?<=[\d.\s])\s*(?:" + "|".join(UNIT_TOKENS) + r")\.?$",
    re.IGNORECASE,
)
_NUMERIC_NOISE = re.compile(r"[\s,$€£¥]")
_LEADING_NUMBER = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_JS_GROUP_REF = re.compile(r"\$(\d+)")

_ACTIVE_VALUES = {"active", "a", "1", "true", "yes"}
_DISCONTINUED_VALUES = {"discontinued", "d", "disc", "inactive", "0", "false", "no"}
_ARCHIVED_VALUES = {"archived", "archive", "arch"}


def as_text(value: Any) -> str:
    """
    String form of a JSON scalar.

    Booleans render as "true"/"false" and integral floats drop the ".0",
    matching how the values looked in the vendor's JSON.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# ===================
# INDIVIDUAL TRANSFORMS
# ===================

def parse_number(value: Any) -> float:
    """
    Parse a price/measurement into a number. Never raises.

    Strips currency symbols, thousands separators, whitespace and a trailing
    unit, then reads the leading decimal number. Returns 0 when nothing
    numeric is left.
    """
    if is_number(value):
        return value

    cleaned = _TRAILING_UNIT.sub("", as_text(value).strip())
    cleaned = _NUMERIC_NOISE.sub("", cleaned)

    match = _LEADING_NUMBER.match(cleaned)
    if not match:
        return 0
    try:
        return float(match.group(0))
    except ValueError:
        return 0


def strip_units(value: Any) -> str:
    """Remove a trailing unit token (in/cm/mm/ft/m/lb/kg/oz/g) and trim."""
    return _TRAILING_UNIT.sub("", as_text(value)).strip()


def regex_replace(value: Any, pattern: Optional[str], replacement: Optional[str]) -> Any:
    """Replace every match of pattern. No pattern means no-op."""
    if not pattern:
        return value
    # Mapping documents use $1-style group references
    repl = _JS_GROUP_REF.sub(r"\\g<\1>", replacement or "")
    try:
        return re.sub(pattern, repl, as_text(value))
    except re.error as e:
        raise TransformError("regex", f"invalid pattern {pattern!r}: {e}") from e


def apply_transform(value: Any, transform: Transform) -> Any:
    """Apply a single transform, then its optional remap table."""
    kind = transform.type

    if kind == TransformType.TRIM:
        result = as_text(value).strip()
    elif kind == TransformType.UPPERCASE:
        result = as_text(value).upper()
    elif kind == TransformType.LOWERCASE:
        result = as_text(value).lower()
    elif kind == TransformType.NUMERIC_PARSE:
        result = parse_number(value)
    elif kind == TransformType.STRIP_UNITS:
        result = strip_units(value)
    elif kind == TransformType.REMOVE_COMMAS:
        result = as_text(value).replace(",", "")
    elif kind == TransformType.REGEX_REPLACE:
        result = regex_replace(value, transform.pattern, transform.replacement)
    else:
        result = value

    if transform.enum_map:
        result = transform.enum_map.get(as_text(result), result)

    return result


def apply_transforms(value: Any, transforms: Iterable[Transform]) -> Any:
    """Fold transforms over value in order. None passes through untouched."""
    if value is None:
        return None

    for transform in transforms:
        value = apply_transform(value, transform)
    return value


# ===================
# CANONICAL HELPERS
# ===================

def normalize_status(value: Any) -> ProductStatus:
    """
    Map a vendor status value onto the canonical statuses.

    Unknown values default to ACTIVE.
    """
    text = as_text(value).strip().lower()

    if text in _ACTIVE_VALUES:
        return ProductStatus.ACTIVE
    if text in _DISCONTINUED_VALUES:
        return ProductStatus.DISCONTINUED
    if text in _ARCHIVED_VALUES:
        return ProductStatus.ARCHIVED

    return ProductStatus.ACTIVE


def slugify(text: str) -> str:
    """
    Collection code from a collection name.

    "Alpha & Omega Series" -> "alpha-omega-series"
    """
    slug = text.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[\s_-]+", "-", slug)
    return slug.strip("-")
