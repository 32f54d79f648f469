"""
Commit engine: applies a filtered preview to the persisted catalog.

Order of work:
1. Re-read the full catalog (all vendors). Failure aborts with one system error.
2. Apply adds, updates, price changes, then discontinuations (only when
   mark_missing_as_discontinued is set). A failing product is recorded and
   the batch carries on.
3. Write the merged catalog in one write.
4. Write the audit record, whatever step 3 did. Audit failures are logged only.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional
import uuid
import structlog

from exceptions import AppError, CommitFatalError, CommitItemError
from models.catalog import CanonicalProduct, ProductPrice, ProductStatus
from models.imports import (
    AuditChanges,
    CommitItemErrorDetail,
    CommitResult,
    CommitSummary,
    ImportAuditRecord,
    ImportPreview,
    PriceChange,
    SafetyToggles,
    UpdateDiff,
)
from services.audit_service import AuditLog
from services.catalog_store import CatalogStore
from services.diff_service import COMPARED_FIELDS, SPEC_PREFIX, change_allowed

logger = structlog.get_logger(__name__)

SYSTEM_ERROR_ID = "system"


@dataclass
class CommitOptions:
    """Per-commit context captured from the request."""
    effective_from: str
    safety_toggles: SafetyToggles = field(default_factory=SafetyToggles)
    imported_by: str = "system"
    notes: Optional[str] = None


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class CommitService:
    """Merges preview buckets into the catalog and records the audit trail."""

    def __init__(
        self,
        catalog_store: CatalogStore,
        audit_log: AuditLog,
        clock: Callable[[], datetime] = _utc_now,
        id_factory: Callable[[], str] = _new_id,
    ):
        self.catalog_store = catalog_store
        self.audit_log = audit_log
        self.clock = clock
        self.id_factory = id_factory

    def commit(self, preview: ImportPreview, options: CommitOptions) -> CommitResult:
        """
        Apply a preview.

        Returns:
            CommitResult; success is False on any item error or a failed
            catalog load/write. Never raises for storage problems.
        """
        import_id = self.id_factory()
        timestamp = self.clock().isoformat()
        toggles = options.safety_toggles
        log = logger.bind(import_id=import_id, vendor_code=preview.vendor_code)

        log.info(
            "commit_started",
            adds=len(preview.adds),
            updates=len(preview.updates),
            price_changes=len(preview.price_changes),
            discontinuations=len(preview.discontinuations),
        )

        # ===================
        # LOAD
        # ===================
        try:
            self.catalog_store.invalidate()
            catalog = {p.product_id: p for p in self.catalog_store.load_all()}
        except AppError as e:
            fatal = CommitFatalError("load", e.message)
            log.error("commit_load_failed", error=e.message)
            return CommitResult(
                success=False,
                import_id=import_id,
                timestamp=timestamp,
                summary=CommitSummary(errors=1),
                errors=[CommitItemErrorDetail(product_id=SYSTEM_ERROR_ID, error=fatal.message)],
            )

        # ===================
        # APPLY
        # ===================
        changes = AuditChanges()
        errors: list[CommitItemErrorDetail] = []

        def attempt(product_id: str, apply: Callable[[], None], applied: list[str]) -> None:
            try:
                apply()
            except Exception as e:
                message = e.message if isinstance(e, AppError) else str(e)
                log.warning("commit_item_failed", product_id=product_id, error=message)
                errors.append(CommitItemErrorDetail(product_id=product_id, error=message))
            else:
                applied.append(product_id)

        for diff in preview.adds:
            attempt(
                diff.product_id,
                lambda: self._apply_add(catalog, diff.incoming, options),
                changes.added,
            )

        for diff in preview.updates:
            attempt(
                diff.product_id,
                lambda: self._apply_update(catalog, diff, options),
                changes.updated,
            )

        for diff in preview.price_changes:
            attempt(
                diff.product_id,
                lambda: self._apply_prices(catalog, diff.product_id, diff.price_changes, options),
                changes.prices_changed,
            )

        if toggles.mark_missing_as_discontinued:
            for diff in preview.discontinuations:
                attempt(
                    diff.product_id,
                    lambda: self._apply_discontinue(catalog, diff.product_id, options),
                    changes.discontinued,
                )

        # ===================
        # WRITE
        # ===================
        write_ok = True
        try:
            self.catalog_store.save_all(list(catalog.values()))
        except AppError as e:
            write_ok = False
            fatal = CommitFatalError("write", e.message)
            log.error("commit_write_failed", error=e.message)
            errors.append(CommitItemErrorDetail(product_id=SYSTEM_ERROR_ID, error=fatal.message))
            # Nothing reached the catalog
            changes = AuditChanges()

        summary = CommitSummary(
            products_added=len(changes.added),
            products_updated=len(changes.updated),
            prices_updated=len(changes.prices_changed),
            products_discontinued=len(changes.discontinued),
            errors=len(errors),
        )
        success = write_ok and not errors

        # ===================
        # AUDIT
        # ===================
        record = ImportAuditRecord(
            id=import_id,
            vendor_code=preview.vendor_code,
            timestamp=timestamp,
            imported_by=options.imported_by,
            effective_from=options.effective_from,
            notes=options.notes,
            safety_toggles=toggles,
            success=success,
            summary=summary,
            changes=changes,
        )
        try:
            self.audit_log.write(record)
        except Exception as e:
            # Non-critical: the commit outcome stands
            log.error("audit_write_failed", error=str(e))

        log.info("commit_finished", success=success, **summary.model_dump())

        return CommitResult(
            success=success,
            import_id=import_id,
            timestamp=timestamp,
            summary=summary,
            errors=errors,
        )

    # ===================
    # BUCKET HANDLERS
    # ===================

    def _require(self, catalog: dict[str, CanonicalProduct], product_id: str) -> CanonicalProduct:
        product = catalog.get(product_id)
        if product is None:
            raise CommitItemError(product_id, "product not found in catalog")
        return product.model_copy(deep=True)

    def _apply_add(
        self,
        catalog: dict[str, CanonicalProduct],
        incoming: CanonicalProduct,
        options: CommitOptions,
    ) -> None:
        if incoming.product_id in catalog:
            raise CommitItemError(incoming.product_id, "product already exists in catalog")

        product = incoming.model_copy(deep=True)
        if options.safety_toggles.tag_new_as_introductions:
            product.specs["introduction"] = True
            product.specs["introductionDate"] = options.effective_from

        catalog[product.product_id] = product

    def _apply_update(
        self,
        catalog: dict[str, CanonicalProduct],
        diff: UpdateDiff,
        options: CommitOptions,
    ) -> None:
        toggles = options.safety_toggles
        product = self._require(catalog, diff.product_id)

        for change in diff.changes:
            # Re-check toggles so a hand-built preview cannot bypass them
            if not change_allowed(change.field, toggles):
                continue

            if change.field.startswith(SPEC_PREFIX):
                key = change.field[len(SPEC_PREFIX):]
                if change.new_value is None:
                    product.specs.pop(key, None)
                else:
                    product.specs[key] = change.new_value
                continue

            attr = COMPARED_FIELDS.get(change.field)
            if attr is None:
                raise CommitItemError(diff.product_id, f"unknown field {change.field}")
            setattr(product, attr, change.new_value)

        if diff.price_changes and not toggles.specs_only:
            self._merge_prices(product, diff.price_changes, options.effective_from)

        catalog[diff.product_id] = product

    def _apply_prices(
        self,
        catalog: dict[str, CanonicalProduct],
        product_id: str,
        price_changes: list[PriceChange],
        options: CommitOptions,
    ) -> None:
        product = self._require(catalog, product_id)
        self._merge_prices(product, price_changes, options.effective_from)
        catalog[product_id] = product

    def _apply_discontinue(
        self,
        catalog: dict[str, CanonicalProduct],
        product_id: str,
        options: CommitOptions,
    ) -> None:
        product = self._require(catalog, product_id)
        product.status = ProductStatus.DISCONTINUED
        product.specs["discontinuedDate"] = options.effective_from
        catalog[product_id] = product

    @staticmethod
    def _merge_prices(
        product: CanonicalProduct,
        price_changes: list[PriceChange],
        effective_from: str,
    ) -> None:
        """Insert-or-replace by tier:currency, then stamp lastPriceUpdate."""
        prices = product.price_map()
        for change in price_changes:
            price = ProductPrice(tier=change.tier, currency=change.currency, amount=change.new_amount)
            prices[price.key] = price

        product.prices = list(prices.values())
        product.specs["lastPriceUpdate"] = effective_from
