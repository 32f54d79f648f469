"""
Shared test fixtures.
"""

import sys
from pathlib import Path

# Add project directory to Python path
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

import pytest
from unittest.mock import patch
from datetime import datetime, timezone
from typing import Callable, Generator, Optional

from services.audit_service import AuditLog
from services.catalog_store import CatalogStore
from services.document_store import FileDocumentStore
from services.import_service import ImportService
from services.preview_cache_service import StagedImportCache


FIXED_NOW = datetime(2026, 3, 2, 15, 30, tzinfo=timezone.utc)
EFFECTIVE_FROM = "2026-03-02"


# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: list = None, count: int = None):
        self.data = data or []
        self.count = count if count is not None else len(self.data)


class MockSupabaseQuery:
    """
    Mock Supabase query builder with chainable methods.

    Filters run against the owning table's rows on execute().
    """

    def __init__(self, table: "MockSupabaseTable", action: str = "select", payload=None):
        self._table = table
        self._action = action
        self._payload = payload
        self._columns: Optional[list[str]] = None
        self._filters: list[Callable[[dict], bool]] = []
        self._order: Optional[tuple[str, bool]] = None
        self._limit: Optional[int] = None

    def select(self, columns: str = "*", **kwargs):
        if columns != "*":
            self._columns = [c.strip() for c in columns.split(",")]
        return self

    def eq(self, column, value):
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def like(self, column, pattern: str):
        prefix = pattern.rstrip("%")
        self._filters.append(lambda row: str(row.get(column, "")).startswith(prefix))
        return self

    def order(self, column, desc: bool = False, **kwargs):
        self._order = (column, desc)
        return self

    def limit(self, count):
        self._limit = count
        return self

    def execute(self) -> MockSupabaseResponse:
        table = self._table
        if table.fail_with is not None:
            raise table.fail_with

        if self._action == "insert":
            rows = self._payload if isinstance(self._payload, list) else [self._payload]
            inserted = []
            for row in rows:
                table.next_id += 1
                stored = {"id": table.next_id, **row}
                table.rows.append(stored)
                inserted.append(stored)
            return MockSupabaseResponse(inserted)

        if self._action == "upsert":
            row = dict(self._payload)
            key = table.primary_key
            for i, existing in enumerate(table.rows):
                if existing.get(key) == row.get(key):
                    table.rows[i] = {**existing, **row}
                    return MockSupabaseResponse([table.rows[i]])
            table.rows.append(row)
            return MockSupabaseResponse([row])

        matched = [r for r in table.rows if all(f(r) for f in self._filters)]

        if self._action == "delete":
            table.rows = [r for r in table.rows if r not in matched]
            return MockSupabaseResponse(matched)

        if self._order:
            column, desc = self._order
            matched = sorted(matched, key=lambda r: r.get(column), reverse=desc)
        if self._limit is not None:
            matched = matched[: self._limit]
        if self._columns:
            matched = [{c: r.get(c) for c in self._columns} for r in matched]

        return MockSupabaseResponse(matched)


class MockSupabaseTable:
    """Mock Supabase table holding rows in memory."""

    def __init__(self, primary_key: str = "key"):
        self.rows: list[dict] = []
        self.primary_key = primary_key
        self.next_id = 0
        self.fail_with: Optional[Exception] = None

    def select(self, *args, **kwargs):
        return MockSupabaseQuery(self).select(*args, **kwargs)

    def insert(self, data):
        return MockSupabaseQuery(self, "insert", data)

    def upsert(self, data):
        return MockSupabaseQuery(self, "upsert", data)

    def delete(self):
        return MockSupabaseQuery(self, "delete")


class MockSupabaseClient:
    """Mock Supabase client."""

    def __init__(self):
        self._tables: dict[str, MockSupabaseTable] = {}

    def set_table_data(self, table_name: str, data: list):
        """Configure mock rows for a table."""
        self.table(table_name).rows = [dict(row) for row in data]

    def fail_table(self, table_name: str, error: Exception):
        """Make every query on a table raise."""
        self.table(table_name).fail_with = error

    def table(self, name: str) -> MockSupabaseTable:
        """Get mock table (created on first use)."""
        return self._tables.setdefault(name, MockSupabaseTable())


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("import_documents", [
                {"key": "products", "body": [...]}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client with mock.

    Any code calling get_supabase_client() gets the mock.
    """
    with patch("config.database.get_supabase_client", return_value=mock_supabase):
        with patch("services.document_store.get_supabase_client", return_value=mock_supabase):
            yield mock_supabase


@pytest.fixture
def clock() -> Callable[[], datetime]:
    """Frozen clock."""
    return lambda: FIXED_NOW


@pytest.fixture
def documents(tmp_path) -> FileDocumentStore:
    """File-backed document store in a temp directory."""
    return FileDocumentStore(tmp_path / "imports")


@pytest.fixture
def catalog_store(documents) -> CatalogStore:
    return CatalogStore(documents)


@pytest.fixture
def audit_log(documents) -> AuditLog:
    return AuditLog(documents)


@pytest.fixture
def import_service(documents, clock) -> ImportService:
    """Pipeline facade over the temp store with a frozen clock."""
    return ImportService(
        documents=documents,
        staged=StagedImportCache(ttl_minutes=30, clock=clock),
        clock=clock,
    )


@pytest.fixture
def api_client(import_service) -> Generator:
    """
    TestClient whose routes use the temp-store ImportService.
    """
    from fastapi.testclient import TestClient
    from main import app

    with patch("routes.imports.get_import_service", return_value=import_service):
        with patch("routes.mappings.get_import_service", return_value=import_service):
            with TestClient(app) as client:
                yield client
