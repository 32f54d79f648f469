"""
Catalog file parser for vendor uploads.

Turns an uploaded .json, .csv or .xlsx file into a raw payload the shape
detector understands. Spreadsheets always come out as the array shape, one
object per row keyed by header.
"""

from datetime import date, datetime
from io import BytesIO
from pathlib import Path
from typing import Any, Union
import json
import structlog

import pandas as pd

from exceptions import CatalogFileParseError

logger = structlog.get_logger(__name__)

SUPPORTED_EXTENSIONS = (".json", ".csv", ".xlsx")


def parse_catalog_file(content: Union[bytes, BytesIO], filename: str) -> Any:
    """
    Parse an uploaded catalog file.

    Args:
        content: Raw file bytes or a file-like object
        filename: Original filename, used to pick the reader

    Returns:
        Parsed JSON value (json files) or a list of row dicts (spreadsheets)

    Raises:
        CatalogFileParseError: Unsupported extension or unreadable file
    """
    extension = Path(filename or "").suffix.lower()
    logger.info("parsing_catalog_file", filename=filename, extension=extension)

    if extension not in SUPPORTED_EXTENSIONS:
        raise CatalogFileParseError(
            message=f"Unsupported file type '{extension or filename}'",
            details={"supported": list(SUPPORTED_EXTENSIONS)}
        )

    raw = content.getvalue() if isinstance(content, BytesIO) else content

    if extension == ".json":
        return _parse_json(raw, filename)

    try:
        if extension == ".csv":
            df = pd.read_csv(BytesIO(raw), dtype=object, encoding="utf-8-sig")
        else:
            df = pd.read_excel(BytesIO(raw), dtype=object, engine="openpyxl")
    except Exception as e:
        logger.error("catalog_file_read_failed", filename=filename, error=str(e))
        raise CatalogFileParseError(
            message="Failed to read spreadsheet",
            details={"filename": filename, "original_error": str(e)}
        )

    rows = _dataframe_to_rows(df)
    logger.info("catalog_file_parsed", filename=filename, rows=len(rows))
    return rows


def _parse_json(raw: bytes, filename: str) -> Any:
    try:
        return json.loads(raw.decode("utf-8-sig"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error("catalog_json_invalid", filename=filename, error=str(e))
        raise CatalogFileParseError(
            message="File is not valid JSON",
            details={"filename": filename, "original_error": str(e)}
        )


def _dataframe_to_rows(df: pd.DataFrame) -> list[dict[str, Any]]:
    """Header-keyed dicts, blank rows dropped, NaN cells as None."""
    df = df.dropna(how="all")
    df.columns = [str(col).strip() for col in df.columns]

    # pandas names blank headers "Unnamed: N"
    keep = [col for col in df.columns if not col.startswith("Unnamed:")]
    df = df[keep]

    return [
        {col: _to_json_value(value) for col, value in record.items()}
        for record in df.to_dict(orient="records")
    ]


def _to_json_value(value: Any) -> Any:
    if pd.isna(value):
        return None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, str):
        return value.strip()
    # numpy scalars
    if hasattr(value, "item"):
        return value.item()
    return value
