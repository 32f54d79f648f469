"""
Temporary storage for staged import previews.

A preview is staged in memory with a TTL, then committed at most once:
staged -> committing -> committed | failed.
Single-process only; a restart drops every staged preview.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
import threading
import uuid
import structlog

from config import settings
from exceptions import ImportStateError, PreviewNotFoundError
from models.imports import CommitResult, ImportPreview, ImportStatus, SafetyToggles

logger = structlog.get_logger(__name__)


@dataclass
class StagedImport:
    """A filtered preview waiting for commit."""
    preview_id: str
    preview: ImportPreview
    safety_toggles: SafetyToggles
    expires_at: datetime
    status: ImportStatus = ImportStatus.STAGED
    result: Optional[CommitResult] = None


class StagedImportCache:
    """In-memory staged previews with TTL expiry."""

    def __init__(
        self,
        ttl_minutes: Optional[int] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.ttl = timedelta(minutes=ttl_minutes or settings.preview_ttl_minutes)
        self.clock = clock
        self._entries: dict[str, StagedImport] = {}
        self._lock = threading.Lock()

    def stage(self, preview: ImportPreview, safety_toggles: SafetyToggles) -> StagedImport:
        """Store a preview, return its staged entry."""
        entry = StagedImport(
            preview_id=str(uuid.uuid4()),
            preview=preview,
            safety_toggles=safety_toggles,
            expires_at=self.clock() + self.ttl,
        )
        with self._lock:
            self._cleanup_expired()
            self._entries[entry.preview_id] = entry

        logger.info("preview_staged", preview_id=entry.preview_id, vendor_code=preview.vendor_code)
        return entry

    def get(self, preview_id: str) -> StagedImport:
        """
        Raises:
            PreviewNotFoundError: Unknown or expired id
        """
        with self._lock:
            return self._get(preview_id)

    def begin_commit(self, preview_id: str) -> StagedImport:
        """
        Move a staged preview to committing.

        Raises:
            PreviewNotFoundError: Unknown or expired id
            ImportStateError: Preview is not staged (already committing or committed)
        """
        with self._lock:
            entry = self._get(preview_id)
            if entry.status != ImportStatus.STAGED:
                raise ImportStateError(preview_id, entry.status.value)
            entry.status = ImportStatus.COMMITTING
            return entry

    def finish_commit(self, preview_id: str, result: CommitResult) -> StagedImport:
        """Record the commit outcome; committed on success, failed otherwise."""
        with self._lock:
            # Committing entries never expire, so the outcome always lands
            entry = self._entries.get(preview_id)
            if entry is None:
                raise PreviewNotFoundError(preview_id)
            entry.status = ImportStatus.COMMITTED if result.success else ImportStatus.FAILED
            entry.result = result

        logger.info("staged_import_finished", preview_id=preview_id, status=entry.status.value)
        return entry

    def abort_commit(self, preview_id: str) -> None:
        """Mark a commit that raised as failed so it does not stay committing."""
        with self._lock:
            entry = self._entries.get(preview_id)
            if entry is not None and entry.status == ImportStatus.COMMITTING:
                entry.status = ImportStatus.FAILED

        logger.warning("staged_import_aborted", preview_id=preview_id)

    def _is_expired(self, entry: StagedImport, now: datetime) -> bool:
        return entry.status != ImportStatus.COMMITTING and now > entry.expires_at

    def _get(self, preview_id: str) -> StagedImport:
        entry = self._entries.get(preview_id)
        if entry is None:
            raise PreviewNotFoundError(preview_id)
        if self._is_expired(entry, self.clock()):
            del self._entries[preview_id]
            raise PreviewNotFoundError(preview_id)
        return entry

    def _cleanup_expired(self) -> None:
        now = self.clock()
        expired = [k for k, entry in self._entries.items() if self._is_expired(entry, now)]
        for k in expired:
            del self._entries[k]
        if expired:
            logger.debug("staged_previews_expired", count=len(expired))
