"""
Unit tests for document storage backends and the catalog store.
"""

import pytest

from config.database import get_supabase_client
from exceptions import DatabaseError, StorageError
from services.catalog_store import CatalogStore
from services.document_store import (
    FileDocumentStore,
    SupabaseDocumentStore,
    create_document_store,
)
from tests.factories import ProductFactory


# ===================
# FILE BACKEND TESTS
# ===================

class TestFileDocumentStore:
    """Tests for FileDocumentStore."""

    def test_read_missing(self, documents):
        assert documents.read("nothing") is None

    def test_write_read(self, documents):
        documents.write("audit/imp-1", {"id": "imp-1", "name": "Café"})
        assert documents.read("audit/imp-1") == {"id": "imp-1", "name": "Café"}

    def test_write_replaces_without_temp_files(self, documents):
        documents.write("products", [1])
        documents.write("products", [1, 2])

        assert documents.read("products") == [1, 2]
        assert [p.name for p in documents.root.iterdir()] == ["products.json"]

    def test_unserializable_document(self, documents):
        with pytest.raises(StorageError):
            documents.write("bad", {"x": object()})
        assert documents.read("bad") is None

    def test_corrupt_file(self, documents):
        documents.root.mkdir(parents=True, exist_ok=True)
        (documents.root / "products.json").write_text("{oops", encoding="utf-8")
        with pytest.raises(StorageError):
            documents.read("products")

    def test_undecodable_file(self, documents):
        documents.root.mkdir(parents=True, exist_ok=True)
        (documents.root / "products.json").write_bytes(b"[\xff\xfe]")
        (documents.root / "log.jsonl").write_bytes(b"\xff\n")

        with pytest.raises(StorageError):
            documents.read("products")
        with pytest.raises(StorageError):
            documents.read_stream("log")

    def test_stream(self, documents):
        documents.append("audit/import-log", {"id": 1})
        documents.append("audit/import-log", {"id": 2})
        assert documents.read_stream("audit/import-log") == [{"id": 1}, {"id": 2}]
        assert documents.read_stream("missing") == []

    def test_list_keys_ignores_streams(self, documents):
        documents.write("audit/b", {})
        documents.write("audit/a", {})
        documents.append("audit/import-log", {"id": 1})
        documents.write("products", [])

        assert documents.list_keys("audit/") == ["audit/a", "audit/b"]
        assert documents.list_keys("nothing/") == []

    def test_delete(self, documents):
        documents.write("x", 1)
        assert documents.delete("x") is True
        assert documents.delete("x") is False


# ===================
# SUPABASE BACKEND TESTS
# ===================

class TestSupabaseDocumentStore:
    """Tests for SupabaseDocumentStore against the mock client."""

    def test_write_read(self, mock_supabase):
        store = SupabaseDocumentStore(mock_supabase)

        store.write("products", [{"sku": "A"}])
        store.write("products", [{"sku": "B"}])

        assert store.read("products") == [{"sku": "B"}]
        assert len(mock_supabase.table("import_documents").rows) == 1

    def test_read_missing(self, mock_supabase):
        assert SupabaseDocumentStore(mock_supabase).read("nothing") is None

    def test_stream_in_insert_order(self, mock_supabase):
        store = SupabaseDocumentStore(mock_supabase)
        store.append("audit/import-log", {"id": "a"})
        store.append("other", {"id": "x"})
        store.append("audit/import-log", {"id": "b"})

        assert store.read_stream("audit/import-log") == [{"id": "a"}, {"id": "b"}]

    def test_list_and_delete(self, mock_supabase):
        store = SupabaseDocumentStore(mock_supabase)
        store.write("audit/2", {})
        store.write("audit/1", {})
        store.write("mappings", [])

        assert store.list_keys("audit/") == ["audit/1", "audit/2"]
        assert store.delete("audit/1") is True
        assert store.delete("audit/1") is False

    def test_client_errors_become_storage_errors(self, mock_supabase):
        mock_supabase.fail_table("import_documents", RuntimeError("connection reset"))
        store = SupabaseDocumentStore(mock_supabase)

        with pytest.raises(StorageError) as exc:
            store.read("products")
        assert "connection reset" in exc.value.message

    def test_default_client(self, mock_db):
        store = SupabaseDocumentStore()
        store.write("k", 1)
        assert mock_db.table("import_documents").rows[0]["body"] == 1


class TestCreateDocumentStore:
    def test_file_backend_default(self, monkeypatch, tmp_path):
        monkeypatch.setattr("services.document_store.settings.storage_backend", "file")
        monkeypatch.setattr("services.document_store.settings.data_dir", str(tmp_path))
        assert isinstance(create_document_store(), FileDocumentStore)

    def test_supabase_backend(self, monkeypatch, mock_db):
        monkeypatch.setattr("services.document_store.settings.storage_backend", "supabase")
        assert isinstance(create_document_store(), SupabaseDocumentStore)


class TestSupabaseClient:
    def test_missing_credentials(self, monkeypatch):
        monkeypatch.setattr("config.database.settings.supabase_url", None)
        get_supabase_client.cache_clear()

        with pytest.raises(DatabaseError) as exc:
            get_supabase_client()

        assert exc.value.status_code == 500
        assert exc.value.details == {"operation": "connect"}


# ===================
# CATALOG STORE TESTS
# ===================

class TestCatalogStore:
    """Tests for CatalogStore."""

    def test_empty(self, catalog_store):
        assert catalog_store.load_all() == []

    def test_save_and_load_vendor(self, catalog_store):
        acme = ProductFactory.create(sku="A")
        lib = ProductFactory.create(vendor_code="lib", sku="A")
        catalog_store.save_all([acme, lib])

        catalog_store.invalidate()

        assert catalog_store.load_vendor("acme") == [acme]
        assert len(catalog_store.load_all()) == 2

    def test_cache_until_invalidated(self, documents):
        store = CatalogStore(documents)
        store.save_all([ProductFactory.create(sku="A")])

        # Written behind the store's back
        CatalogStore(documents).save_all([])

        assert len(store.load_all()) == 1
        store.invalidate()
        assert store.load_all() == []

    def test_load_returns_copy(self, catalog_store):
        catalog_store.save_all([ProductFactory.create(sku="A")])
        catalog_store.load_all().clear()
        assert len(catalog_store.load_all()) == 1

    def test_malformed_snapshot(self, documents, catalog_store):
        documents.write("products", [{"sku": "no id"}])
        with pytest.raises(StorageError):
            catalog_store.load_all()
