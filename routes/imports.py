"""
Import pipeline API routes.

analyze -> preview (staged) -> commit, plus the audit trail.
Pipeline failures (bad shape, invalid mapping) answer 400 with the typed
outcome body; staged-workflow misuse answers 404/409 via AppError.
"""

from fastapi import APIRouter, File, Form, Query, UploadFile
from fastapi.responses import JSONResponse
from typing import Optional
import structlog

from models.imports import (
    AnalyzeOutcome,
    AnalyzeRequest,
    AuditListResponse,
    CommitRequest,
    CommitResult,
    DirectCommitRequest,
    ImportAuditRecord,
    PreviewOutcome,
    PreviewRequest,
)
from services.import_service import get_import_service
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter()


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    # Unexpected error
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


def _rejected(outcome) -> JSONResponse:
    """400 carrying the outcome body."""
    return JSONResponse(status_code=400, content=outcome.to_json_dict())


# ===================
# ANALYZE
# ===================

@router.post("/analyze", response_model=AnalyzeOutcome)
async def analyze_payload(data: AnalyzeRequest):
    """
    Detect shape and profile columns of a raw JSON payload.

    Returns column stats and mapping suggestions.
    """
    try:
        outcome = get_import_service().analyze(data.data, data.vendor_code)
        if not outcome.success:
            return _rejected(outcome)
        return outcome

    except Exception as e:
        return handle_error(e)


@router.post("/analyze/file", response_model=AnalyzeOutcome)
async def analyze_file(
    file: UploadFile = File(...),
    vendor_code: Optional[str] = Form(None),
):
    """
    Analyze an uploaded .json, .csv or .xlsx catalog.

    The parsed payload is returned in `data` so the client can send it back
    to /preview.
    """
    logger.info(
        "catalog_upload_started",
        filename=file.filename,
        content_type=file.content_type
    )

    try:
        content = await file.read()
        outcome = get_import_service().analyze_file(content, file.filename or "", vendor_code)
        if not outcome.success:
            logger.warning("catalog_upload_rejected", filename=file.filename, errors=outcome.errors)
            return _rejected(outcome)
        return outcome

    except Exception as e:
        return handle_error(e)


# ===================
# PREVIEW / COMMIT
# ===================

@router.post("/preview", response_model=PreviewOutcome)
async def preview_import(data: PreviewRequest):
    """
    Normalize, diff and stage a payload.

    Returns the filtered preview and a previewId to commit.
    """
    try:
        outcome = get_import_service().preview(data)
        if not outcome.success:
            return _rejected(outcome)
        return outcome

    except Exception as e:
        return handle_error(e)


@router.post("/commit", response_model=CommitResult)
async def commit_import(data: CommitRequest):
    """
    Commit a staged preview.

    Raises:
        404: Preview not found or expired
        409: Preview already committed
    """
    try:
        return get_import_service().commit(data.preview_id, data.imported_by, data.notes)

    except Exception as e:
        return handle_error(e)


@router.post("/commit/direct", response_model=CommitResult)
async def commit_direct(data: DirectCommitRequest):
    """Preview and commit in one call."""
    try:
        result = get_import_service().commit_payload(data)
        if not result.import_id:
            # Rejected before reaching the catalog
            return _rejected(result)
        return result

    except Exception as e:
        return handle_error(e)


# ===================
# AUDIT
# ===================

@router.get("/audit", response_model=AuditListResponse)
async def list_audit_records(
    vendor_code: Optional[str] = Query(None, alias="vendorCode", description="Filter by vendor"),
    limit: int = Query(100, ge=1, le=1000, description="Max records"),
):
    """List commit audit records, newest first."""
    try:
        records = get_import_service().audit_log.list_records(vendor_code=vendor_code, limit=limit)
        return AuditListResponse(data=records, total=len(records))

    except Exception as e:
        return handle_error(e)


@router.get("/audit/{import_id}", response_model=ImportAuditRecord)
async def get_audit_record(import_id: str):
    """
    Get one audit record.

    Raises:
        404: No record for this import
    """
    try:
        return get_import_service().audit_log.get_record(import_id)

    except Exception as e:
        return handle_error(e)
