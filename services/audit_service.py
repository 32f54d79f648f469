"""
Append-only audit trail of catalog commits.

Each commit produces one record document (audit/<import_id>) and one line in
the audit/import-log stream.
"""

from typing import Optional
import structlog

from exceptions import AuditRecordNotFoundError
from models.imports import ImportAuditRecord
from services.document_store import DocumentStore

logger = structlog.get_logger(__name__)

AUDIT_PREFIX = "audit/"
AUDIT_LOG_STREAM = "audit/import-log"


class AuditLog:
    """Writes and reads import audit records."""

    def __init__(self, documents: DocumentStore):
        self.documents = documents

    def write(self, record: ImportAuditRecord) -> None:
        """
        Persist a record and append its log line.

        Raises:
            StorageError: Either write failed. Callers decide whether that
                matters; the commit engine only logs it.
        """
        key = f"{AUDIT_PREFIX}{record.id}"
        if self.documents.read(key) is not None:
            # Records are write-once
            logger.warning("audit_record_exists", import_id=record.id)
            return

        self.documents.write(key, record.to_json_dict())
        self.documents.append(AUDIT_LOG_STREAM, {
            "id": record.id,
            "vendorCode": record.vendor_code,
            "timestamp": record.timestamp,
            "importedBy": record.imported_by,
            "success": record.success,
            "summary": record.summary.to_json_dict(),
        })

        logger.info(
            "audit_record_written",
            import_id=record.id,
            vendor_code=record.vendor_code,
            success=record.success,
        )

    def get_record(self, import_id: str) -> ImportAuditRecord:
        """
        Raises:
            AuditRecordNotFoundError: No record for this import
        """
        raw = self.documents.read(f"{AUDIT_PREFIX}{import_id}")
        if raw is None:
            raise AuditRecordNotFoundError(import_id)
        return ImportAuditRecord.model_validate(raw)

    def list_records(
        self,
        vendor_code: Optional[str] = None,
        limit: int = 100,
    ) -> list[ImportAuditRecord]:
        """Records newest first, optionally for one vendor."""
        records = []
        for key in self.documents.list_keys(AUDIT_PREFIX):
            raw = self.documents.read(key)
            if raw is None:
                continue
            record = ImportAuditRecord.model_validate(raw)
            if vendor_code and record.vendor_code != vendor_code:
                continue
            records.append(record)

        records.sort(key=lambda r: r.timestamp, reverse=True)
        return records[:limit]

    def read_log(self) -> list[dict]:
        """Summary lines, oldest first."""
        return self.documents.read_stream(AUDIT_LOG_STREAM)
