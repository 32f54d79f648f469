"""
JSON shape detection for vendor catalog payloads.

Two shapes are accepted:
    array: [{"SKU": "A-1", ...}, {"SKU": "A-2", ...}]
    flat:  {"A-1": {...}, "A-2": {...}}   (keys are intrinsic SKUs)
"""

from dataclasses import dataclass
from typing import Any, Optional
import structlog

from exceptions import ShapeError
from models.mapping import JsonShape

logger = structlog.get_logger(__name__)


@dataclass
class ExtractedRow:
    """One raw row plus the key it was filed under (flat shape only)."""
    row: dict[str, Any]
    intrinsic_key: Optional[str] = None


def detect_shape(payload: Any) -> JsonShape:
    """
    Classify the payload root.

    Raises:
        ShapeError: Root is neither a list nor a non-empty object of objects
    """
    if isinstance(payload, list):
        return JsonShape.ARRAY

    if isinstance(payload, dict) and payload:
        if all(isinstance(v, dict) for v in payload.values()):
            return JsonShape.FLAT

    logger.warning("unrecognized_payload_shape", root_type=type(payload).__name__)
    raise ShapeError(
        details={"root_type": type(payload).__name__}
    )


def extract_rows(payload: Any, shape: Optional[JsonShape] = None) -> list[ExtractedRow]:
    """
    Turn a payload into ordered rows.

    Args:
        payload: Parsed JSON value
        shape: Known shape (e.g. a mapping override); detected when None

    Returns:
        Rows in payload order. Flat rows carry their key as intrinsic_key.

    Raises:
        ShapeError: Payload does not match the shape, or an array element is
            not an object
    """
    if shape is None:
        shape = detect_shape(payload)

    if shape == JsonShape.ARRAY:
        if not isinstance(payload, list):
            raise ShapeError(
                "payload is not an array of rows",
                details={"expected": "array", "root_type": type(payload).__name__}
            )
        rows = []
        for index, row in enumerate(payload):
            if not isinstance(row, dict):
                raise ShapeError(
                    f"row {index} is not an object",
                    details={"index": index, "row_type": type(row).__name__}
                )
            rows.append(ExtractedRow(row=row))
        return rows

    if not isinstance(payload, dict) or not all(isinstance(v, dict) for v in payload.values()):
        raise ShapeError(
            "payload is not an object keyed by SKU",
            details={"expected": "flat", "root_type": type(payload).__name__}
        )

    return [
        ExtractedRow(row=row, intrinsic_key=str(key))
        for key, row in payload.items()
    ]
