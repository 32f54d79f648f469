"""
Business logic services.

Each service handles one stage of the import pipeline.
"""

from services.document_store import (
    DocumentStore,
    FileDocumentStore,
    SupabaseDocumentStore,
    create_document_store,
)
from services.catalog_store import CatalogStore
from services.audit_service import AuditLog
from services.mapping_service import MappingService
from services.normalizer_service import NormalizerService, NormalizeResult
from services.diff_service import DiffOptions, generate_preview, apply_safety_toggles
from services.commit_service import CommitService, CommitOptions
from services.preview_cache_service import StagedImportCache, StagedImport
from services.import_service import ImportService, get_import_service

__all__ = [
    "DocumentStore",
    "FileDocumentStore",
    "SupabaseDocumentStore",
    "create_document_store",
    "CatalogStore",
    "AuditLog",
    "MappingService",
    "NormalizerService",
    "NormalizeResult",
    "DiffOptions",
    "generate_preview",
    "apply_safety_toggles",
    "CommitService",
    "CommitOptions",
    "StagedImportCache",
    "StagedImport",
    "ImportService",
    "get_import_service",
]
