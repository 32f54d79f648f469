"""
JSON document storage for catalogs, mappings and audit records.

Two backends share one small interface:
- FileDocumentStore: one JSON file per key under settings.data_dir, JSONL
  files for append-only streams.
- SupabaseDocumentStore: rows in the import_documents / import_log tables.

Keys are slash-separated paths without extension, e.g. "products",
"audit/<import_id>".
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional
import json
import os
import tempfile
import structlog

from config import settings, get_supabase_client
from exceptions import StorageError

logger = structlog.get_logger(__name__)


class DocumentStore(ABC):
    """Key/value store for JSON documents plus append-only line streams."""

    @abstractmethod
    def read(self, key: str) -> Optional[Any]:
        """Return the document, or None if it does not exist."""

    @abstractmethod
    def write(self, key: str, document: Any) -> None:
        """Create or replace a document in one write."""

    @abstractmethod
    def append(self, stream: str, entry: dict) -> None:
        """Append one entry to a stream."""

    @abstractmethod
    def read_stream(self, stream: str) -> list[dict]:
        """All entries of a stream, oldest first."""

    @abstractmethod
    def list_keys(self, prefix: str) -> list[str]:
        """Document keys under a prefix (e.g. "audit/"), sorted."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove a document. Returns False if it did not exist."""


# ===================
# FILE BACKEND
# ===================

class FileDocumentStore(DocumentStore):
    """Documents as pretty-printed JSON files under a root directory."""

    def __init__(self, root: Path | str):
        self.root = Path(root)

    def _path(self, key: str, suffix: str = ".json") -> Path:
        return self.root / f"{key}{suffix}"

    def read(self, key: str) -> Optional[Any]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error("document_read_failed", key=key, error=str(e))
            raise StorageError("read", key, str(e)) from e

    def write(self, key: str, document: Any) -> None:
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # Write to a sibling temp file, then rename over the target
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(document, f, indent=2, ensure_ascii=False)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except (OSError, TypeError, ValueError) as e:
            logger.error("document_write_failed", key=key, error=str(e))
            raise StorageError("write", key, str(e)) from e

        logger.debug("document_written", key=key, path=str(path))

    def append(self, stream: str, entry: dict) -> None:
        path = self._path(stream, ".jsonl")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(entry, ensure_ascii=False) + "\n")
        except (OSError, TypeError, ValueError) as e:
            logger.error("stream_append_failed", stream=stream, error=str(e))
            raise StorageError("append", stream, str(e)) from e

    def read_stream(self, stream: str) -> list[dict]:
        path = self._path(stream, ".jsonl")
        if not path.exists():
            return []
        try:
            lines = path.read_text(encoding="utf-8").splitlines()
            return [json.loads(line) for line in lines if line.strip()]
        except (OSError, ValueError) as e:
            logger.error("stream_read_failed", stream=stream, error=str(e))
            raise StorageError("read", stream, str(e)) from e

    def list_keys(self, prefix: str) -> list[str]:
        directory = self.root / prefix
        if not directory.is_dir():
            return []
        return sorted(
            f"{prefix}{path.stem}"
            for path in directory.glob("*.json")
        )

    def delete(self, key: str) -> bool:
        path = self._path(key)
        if not path.exists():
            return False
        try:
            path.unlink()
        except OSError as e:
            raise StorageError("delete", key, str(e)) from e
        return True


# ===================
# SUPABASE BACKEND
# ===================

class SupabaseDocumentStore(DocumentStore):
    """
    Documents as rows in Supabase.

    Tables:
        import_documents(key text primary key, body jsonb, updated_at timestamptz)
        import_log(id bigserial, stream text, entry jsonb, created_at timestamptz)
    """

    def __init__(self, client=None):
        self.db = client or get_supabase_client()
        self.documents_table = "import_documents"
        self.log_table = "import_log"

    def read(self, key: str) -> Optional[Any]:
        try:
            result = (
                self.db.table(self.documents_table)
                .select("body")
                .eq("key", key)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error("document_read_failed", key=key, error=str(e))
            raise StorageError("read", key, str(e)) from e

        return result.data[0]["body"] if result.data else None

    def write(self, key: str, document: Any) -> None:
        try:
            self.db.table(self.documents_table).upsert({
                "key": key,
                "body": document,
            }).execute()
        except Exception as e:
            logger.error("document_write_failed", key=key, error=str(e))
            raise StorageError("write", key, str(e)) from e

    def append(self, stream: str, entry: dict) -> None:
        try:
            self.db.table(self.log_table).insert({
                "stream": stream,
                "entry": entry,
            }).execute()
        except Exception as e:
            logger.error("stream_append_failed", stream=stream, error=str(e))
            raise StorageError("append", stream, str(e)) from e

    def read_stream(self, stream: str) -> list[dict]:
        try:
            result = (
                self.db.table(self.log_table)
                .select("entry")
                .eq("stream", stream)
                .order("id")
                .execute()
            )
        except Exception as e:
            raise StorageError("read", stream, str(e)) from e
        return [row["entry"] for row in result.data]

    def list_keys(self, prefix: str) -> list[str]:
        try:
            result = (
                self.db.table(self.documents_table)
                .select("key")
                .like("key", f"{prefix}%")
                .execute()
            )
        except Exception as e:
            raise StorageError("list", prefix, str(e)) from e
        return sorted(row["key"] for row in result.data)

    def delete(self, key: str) -> bool:
        try:
            result = (
                self.db.table(self.documents_table)
                .delete()
                .eq("key", key)
                .execute()
            )
        except Exception as e:
            raise StorageError("delete", key, str(e)) from e
        return bool(result.data)


# =============================================================================
# Factory
# =============================================================================

def create_document_store() -> DocumentStore:
    """Build the backend selected by settings.storage_backend."""
    if settings.storage_backend == "supabase":
        logger.info("document_store_selected", backend="supabase")
        return SupabaseDocumentStore()

    logger.info("document_store_selected", backend="file", data_dir=settings.data_dir)
    return FileDocumentStore(settings.data_dir)
