"""
Payload and file parsers module.
"""

from parsers.shape_detector import (
    ExtractedRow,
    detect_shape,
    extract_rows,
)
from parsers.catalog_file_parser import parse_catalog_file

__all__ = [
    "ExtractedRow",
    "detect_shape",
    "extract_rows",
    "parse_catalog_file",
]
