"""
Persisted product catalog.

The catalog is a single snapshot document holding every vendor's products.
It is read and rewritten wholesale; there is no per-vendor locking, so two
concurrent commits against the same store can race.
"""

from typing import Optional
import structlog

from exceptions import StorageError
from models.catalog import CanonicalProduct
from services.document_store import DocumentStore

logger = structlog.get_logger(__name__)

CATALOG_KEY = "products"


class CatalogStore:
    """
    Read-modify-write access to the catalog snapshot.

    Loaded snapshots are cached on the instance. Call invalidate() before a
    read that must see the latest persisted state.
    """

    def __init__(self, documents: DocumentStore):
        self.documents = documents
        self._cache: Optional[list[CanonicalProduct]] = None

    def invalidate(self) -> None:
        """Drop the cached snapshot."""
        self._cache = None
        logger.debug("catalog_cache_invalidated")

    def load_all(self) -> list[CanonicalProduct]:
        """
        Every product across all vendors.

        Raises:
            StorageError: Snapshot unreadable or malformed
        """
        if self._cache is None:
            raw = self.documents.read(CATALOG_KEY) or []
            if not isinstance(raw, list):
                raise StorageError("read", CATALOG_KEY, "catalog snapshot is not a list")
            try:
                self._cache = [CanonicalProduct.model_validate(item) for item in raw]
            except ValueError as e:
                raise StorageError("read", CATALOG_KEY, f"malformed product: {e}") from e

            logger.info("catalog_loaded", products=len(self._cache))

        return list(self._cache)

    def load_vendor(self, vendor_code: str) -> list[CanonicalProduct]:
        """Products belonging to one vendor."""
        return [p for p in self.load_all() if p.vendor_code == vendor_code]

    def save_all(self, products: list[CanonicalProduct]) -> None:
        """
        Replace the snapshot in one write.

        Raises:
            StorageError: Write failed; the cache is dropped either way
        """
        self._cache = None
        self.documents.write(CATALOG_KEY, [p.to_json_dict() for p in products])
        self._cache = list(products)

        logger.info("catalog_saved", products=len(products))
