"""
Import pipeline facade used by the routes.

analyze -> (author mapping) -> preview (staged) -> commit.

Detection, validation and storage problems come back as typed outcomes
(AnalyzeOutcome / PreviewOutcome / CommitResult). Only misuse of the staged
workflow raises: an unknown preview id or a second commit of the same preview.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Optional, Union
from io import BytesIO
import structlog

from config import settings
from exceptions import AppError, MappingValidationError, PreviewNotFoundError, ValidationError
from models.imports import (
    AnalyzeOutcome,
    CommitItemErrorDetail,
    CommitResult,
    CommitSummary,
    DirectCommitRequest,
    ImportPreview,
    PreviewOutcome,
    PreviewRequest,
    SkippedRow,
)
from models.mapping import VendorMapping
from parsers.catalog_file_parser import parse_catalog_file
from parsers.shape_detector import detect_shape, extract_rows
from services.audit_service import AuditLog
from services.catalog_store import CatalogStore
from services.column_analyzer import analyze_columns, suggest_mapping
from services.commit_service import SYSTEM_ERROR_ID, CommitOptions, CommitService
from services.diff_service import DiffOptions, apply_safety_toggles, generate_preview
from services.document_store import DocumentStore, create_document_store
from services.mapping_service import MappingService
from services.normalizer_service import NormalizerService
from services.preview_cache_service import StagedImportCache

logger = structlog.get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ImportService:
    """
    Wires the pipeline stages to one document store.

    Every collaborator is explicit: the catalog cache lives on the
    CatalogStore, staged previews on the StagedImportCache.
    """

    def __init__(
        self,
        documents: Optional[DocumentStore] = None,
        staged: Optional[StagedImportCache] = None,
        clock: Callable[[], datetime] = _utc_now,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self.documents = documents or create_document_store()
        self.clock = clock

        self.catalog_store = CatalogStore(self.documents)
        self.audit_log = AuditLog(self.documents)
        self.mappings = MappingService(self.documents, clock=clock)
        self.normalizer = NormalizerService()
        self.staged = staged or StagedImportCache(clock=clock)

        commit_kwargs = {"clock": clock}
        if id_factory is not None:
            commit_kwargs["id_factory"] = id_factory
        self.committer = CommitService(self.catalog_store, self.audit_log, **commit_kwargs)

    # ===================
    # ANALYZE
    # ===================

    def analyze(self, payload: Any, vendor_code: Optional[str] = None) -> AnalyzeOutcome:
        """Detect shape, profile columns and suggest a mapping."""
        try:
            shape = detect_shape(payload)
            rows = extract_rows(payload, shape)
        except AppError as e:
            return AnalyzeOutcome(success=False, errors=[e.message])

        raw_rows = [r.row for r in rows]
        columns = analyze_columns(raw_rows)
        sample_size = min(len(raw_rows), settings.column_sample_size)

        logger.info("payload_analyzed", shape=shape.value, rows=len(rows), columns=len(columns))

        return AnalyzeOutcome(
            success=True,
            shape=shape,
            total_rows=len(rows),
            columns=columns,
            suggestions=suggest_mapping(columns, sample_size, shape, vendor_code),
        )

    def analyze_file(
        self,
        content: Union[bytes, BytesIO],
        filename: str,
        vendor_code: Optional[str] = None,
    ) -> AnalyzeOutcome:
        """Parse an uploaded file, then analyze it. The parsed payload is echoed back."""
        try:
            payload = parse_catalog_file(content, filename)
        except AppError as e:
            return AnalyzeOutcome(success=False, errors=[e.message])

        outcome = self.analyze(payload, vendor_code)
        if outcome.success:
            outcome.data = payload
        return outcome

    # ===================
    # PREVIEW
    # ===================

    def _resolve_mapping(self, request: PreviewRequest) -> VendorMapping:
        if request.mapping is not None:
            return request.mapping
        if request.mapping_id:
            return self.mappings.get_mapping(request.mapping_id)
        raise ValidationError("Either mapping or mappingId is required", details={"field": "mapping"})

    def _build_preview(self, request: PreviewRequest) -> tuple[ImportPreview, list[SkippedRow]]:
        """
        Normalize, diff against the vendor's catalog, apply toggles.

        Raises:
            AppError: Any stage failed
        """
        mapping = self._resolve_mapping(request)
        normalized = self.normalizer.normalize(request.data, mapping, request.vendor_code)

        self.catalog_store.invalidate()
        existing = self.catalog_store.load_vendor(request.vendor_code)

        toggles = request.safety_toggles
        preview = generate_preview(
            normalized.products,
            existing,
            DiffOptions(
                vendor_code=request.vendor_code,
                effective_from=request.effective_from or self.clock().date().isoformat(),
                ignore_fields=request.ignore_fields,
                detect_discontinued=toggles.mark_missing_as_discontinued,
            ),
        )
        return apply_safety_toggles(preview, toggles), normalized.skipped

    def preview(self, request: PreviewRequest) -> PreviewOutcome:
        """Build and stage a filtered preview."""
        try:
            preview, skipped = self._build_preview(request)
        except MappingValidationError as e:
            return PreviewOutcome(success=False, errors=e.errors)
        except AppError as e:
            logger.warning("preview_failed", vendor_code=request.vendor_code, error=e.message)
            return PreviewOutcome(success=False, errors=[e.message])

        entry = self.staged.stage(preview, request.safety_toggles)
        return PreviewOutcome(
            success=True,
            preview_id=entry.preview_id,
            status=entry.status,
            preview=preview,
            skipped_rows=skipped,
        )

    # ===================
    # COMMIT
    # ===================

    def commit(
        self,
        preview_id: str,
        imported_by: str,
        notes: Optional[str] = None,
    ) -> CommitResult:
        """
        Commit a staged preview exactly once.

        Raises:
            PreviewNotFoundError: Unknown or expired preview id
            ImportStateError: Preview already committing or committed
        """
        entry = self.staged.begin_commit(preview_id)

        try:
            result = self.committer.commit(
                entry.preview,
                CommitOptions(
                    effective_from=entry.preview.effective_from,
                    safety_toggles=entry.safety_toggles,
                    imported_by=imported_by,
                    notes=notes,
                ),
            )
        except Exception:
            self.staged.abort_commit(preview_id)
            raise

        try:
            self.staged.finish_commit(preview_id, result)
        except PreviewNotFoundError:
            # The catalog write already happened; the caller still gets the result
            logger.warning("staged_import_outcome_lost", preview_id=preview_id)
        return result

    def commit_payload(self, request: DirectCommitRequest) -> CommitResult:
        """Preview and commit in one call, without staging."""
        try:
            preview, _ = self._build_preview(request)
        except MappingValidationError as e:
            return self._failed_commit(e.errors)
        except AppError as e:
            logger.warning("direct_commit_failed", vendor_code=request.vendor_code, error=e.message)
            return self._failed_commit([e.message])

        return self.committer.commit(
            preview,
            CommitOptions(
                effective_from=preview.effective_from,
                safety_toggles=request.safety_toggles,
                imported_by=request.imported_by,
                notes=request.notes,
            ),
        )

    def _failed_commit(self, messages: list[str]) -> CommitResult:
        return CommitResult(
            success=False,
            import_id="",
            timestamp=self.clock().isoformat(),
            summary=CommitSummary(errors=len(messages)),
            errors=[CommitItemErrorDetail(product_id=SYSTEM_ERROR_ID, error=m) for m in messages],
        )


# =============================================================================
# Singleton
# =============================================================================

_import_service: Optional[ImportService] = None


def get_import_service() -> ImportService:
    """Get or create ImportService instance."""
    global _import_service
    if _import_service is None:
        _import_service = ImportService()
    return _import_service
