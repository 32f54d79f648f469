"""
Vendor mapping API routes.

CRUD over saved mappings plus validate / dry-run helpers for the editor.
"""

from fastapi import APIRouter, Query
from typing import Optional
import structlog

from models.mapping import (
    MappingListResponse,
    MappingTestRequest,
    MappingTestResult,
    MappingValidateResponse,
    VendorMapping,
)
from routes.imports import handle_error
from services.import_service import get_import_service

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("", response_model=MappingListResponse)
async def list_mappings(
    vendor_code: Optional[str] = Query(None, alias="vendorCode", description="Filter by vendor"),
):
    """List saved mappings, most recently updated first."""
    try:
        mappings = get_import_service().mappings.list_mappings(vendor_code)
        return MappingListResponse(data=mappings, total=len(mappings))

    except Exception as e:
        return handle_error(e)


@router.post("", response_model=VendorMapping)
async def save_mapping(data: VendorMapping):
    """
    Create a mapping (no id) or save a new version of an existing one.

    Raises:
        404: id given but no such mapping
    """
    try:
        return get_import_service().mappings.save_mapping(data)

    except Exception as e:
        return handle_error(e)


@router.post("/validate", response_model=MappingValidateResponse)
async def validate_mapping(data: VendorMapping):
    """Pre-flight check; lists every problem at once."""
    try:
        errors = get_import_service().normalizer.validate_mapping(data)
        return MappingValidateResponse(valid=not errors, errors=errors)

    except Exception as e:
        return handle_error(e)


@router.post("/test", response_model=MappingTestResult)
async def test_mapping(data: MappingTestRequest):
    """Normalize a payload with a draft mapping without touching the catalog."""
    try:
        return get_import_service().normalizer.test_mapping(
            data.data,
            data.mapping,
            max_rows=data.max_rows,
        )

    except Exception as e:
        return handle_error(e)


@router.get("/{mapping_id}", response_model=VendorMapping)
async def get_mapping(mapping_id: str):
    """
    Get a mapping by id.

    Raises:
        404: Mapping not found
    """
    try:
        return get_import_service().mappings.get_mapping(mapping_id)

    except Exception as e:
        return handle_error(e)


@router.delete("/{mapping_id}", status_code=204)
async def delete_mapping(mapping_id: str):
    """
    Delete a mapping.

    Raises:
        404: Mapping not found
    """
    try:
        get_import_service().mappings.delete_mapping(mapping_id)
        return None

    except Exception as e:
        return handle_error(e)
