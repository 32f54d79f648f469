"""
Vendor mapping persistence.

All mappings live in one "mappings" document. Saving an existing mapping
bumps its version; created_at is preserved.
"""

from datetime import datetime, timezone
from typing import Callable, Optional
import uuid
import structlog

from exceptions import MappingNotFoundError
from models.mapping import VendorMapping
from services.document_store import DocumentStore

logger = structlog.get_logger(__name__)

MAPPINGS_KEY = "mappings"


class MappingService:
    """CRUD for vendor mappings."""

    def __init__(
        self,
        documents: DocumentStore,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.documents = documents
        self.clock = clock

    def _load(self) -> list[VendorMapping]:
        raw = self.documents.read(MAPPINGS_KEY) or []
        return [VendorMapping.model_validate(item) for item in raw]

    def _save(self, mappings: list[VendorMapping]) -> None:
        self.documents.write(MAPPINGS_KEY, [m.to_json_dict() for m in mappings])

    # ===================
    # READ OPERATIONS
    # ===================

    def list_mappings(self, vendor_code: Optional[str] = None) -> list[VendorMapping]:
        """Mappings, most recently updated first."""
        mappings = self._load()
        if vendor_code:
            mappings = [m for m in mappings if m.vendor_code == vendor_code]

        epoch = datetime.min.replace(tzinfo=timezone.utc)
        mappings.sort(key=lambda m: m.updated_at or epoch, reverse=True)
        return mappings

    def get_mapping(self, mapping_id: str) -> VendorMapping:
        """
        Raises:
            MappingNotFoundError: Unknown id
        """
        for mapping in self._load():
            if mapping.id == mapping_id:
                return mapping
        raise MappingNotFoundError(mapping_id)

    # ===================
    # WRITE OPERATIONS
    # ===================

    def save_mapping(self, data: VendorMapping) -> VendorMapping:
        """
        Create (no id) or update (existing id) a mapping.

        Raises:
            MappingNotFoundError: id given but no such mapping
        """
        mappings = self._load()
        now = self.clock()

        if data.id:
            index = next((i for i, m in enumerate(mappings) if m.id == data.id), None)
            if index is None:
                raise MappingNotFoundError(data.id)

            current = mappings[index]
            saved = data.model_copy(update={
                "version": current.version + 1,
                "created_at": current.created_at,
                "updated_at": now,
                "display_name": data.display_name or current.display_name,
            })
            mappings[index] = saved
            logger.info(
                "mapping_updated",
                mapping_id=saved.id,
                vendor_code=saved.vendor_code,
                version=saved.version,
            )
        else:
            saved = data.model_copy(update={
                "id": str(uuid.uuid4()),
                "version": 1,
                "created_at": now,
                "updated_at": now,
                "display_name": data.display_name or data.vendor_code,
            })
            mappings.append(saved)
            logger.info("mapping_created", mapping_id=saved.id, vendor_code=saved.vendor_code)

        self._save(mappings)
        return saved

    def delete_mapping(self, mapping_id: str) -> None:
        """
        Raises:
            MappingNotFoundError: Unknown id
        """
        mappings = self._load()
        remaining = [m for m in mappings if m.id != mapping_id]
        if len(remaining) == len(mappings):
            raise MappingNotFoundError(mapping_id)

        self._save(remaining)
        logger.info("mapping_deleted", mapping_id=mapping_id)
