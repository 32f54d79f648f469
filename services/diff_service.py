"""
Diff generator and safety toggle filter.

generate_preview() buckets an incoming batch against the vendor's persisted
products. Every incoming product lands in exactly one of add / update /
price_change / unchanged; price deltas on an update travel with it as an
annotation instead of a second bucket entry.

apply_safety_toggles() narrows a preview and always returns a copy.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Sequence
import structlog

from models.catalog import CanonicalProduct, ProductStatus
from models.imports import (
    AddDiff,
    DiscontinueDiff,
    FieldChange,
    ImportPreview,
    PreviewSummary,
    PriceChange,
    PriceChangeDiff,
    SafetyToggles,
    UpdateDiff,
)

logger = structlog.get_logger(__name__)

# Wire name -> attribute
COMPARED_FIELDS = {
    "sku": "sku",
    "name": "name",
    "collectionCode": "collection_code",
    "collectionName": "collection_name",
    "status": "status",
}

COLLECTION_FIELDS = frozenset({"collectionCode", "collectionName"})

SPEC_PREFIX = "specs."

# Spec keys written by the commit engine, never compared
STAMPED_SPEC_KEYS = frozenset({
    "introduction",
    "introductionDate",
    "lastPriceUpdate",
    "discontinuedDate",
})


@dataclass
class DiffOptions:
    """Inputs to generate_preview besides the two product lists."""
    vendor_code: str
    effective_from: str
    ignore_fields: Sequence[str] = field(default_factory=tuple)
    detect_discontinued: bool = False


# ===================
# EQUALITY
# ===================

def canonical(value: Any) -> Any:
    """
    Order-independent, hashable form of a JSON-like value.

    Numbers compare by value (1 == 1.0) but booleans stay distinct from
    numbers; dict key order is irrelevant, list order is not.
    """
    if value is None:
        return ("null",)
    if isinstance(value, bool):
        return ("bool", value)
    if isinstance(value, (int, float)):
        return ("number", float(value))
    if isinstance(value, str):
        return ("string", value)
    if isinstance(value, dict):
        return ("object", frozenset((str(k), canonical(v)) for k, v in value.items()))
    if isinstance(value, (list, tuple)):
        return ("array", tuple(canonical(v) for v in value))
    return ("other", repr(value))


def values_equal(a: Any, b: Any) -> bool:
    return canonical(a) == canonical(b)


# ===================
# COMPARISON
# ===================

def _wire_value(value: Any) -> Any:
    return value.value if isinstance(value, ProductStatus) else value


def compare_fields(
    incoming: CanonicalProduct,
    existing: CanonicalProduct,
    ignore_fields: Sequence[str] = (),
) -> list[FieldChange]:
    """Core field and spec-key changes, in a stable order."""
    ignored = set(ignore_fields)
    changes: list[FieldChange] = []

    for wire_name, attr in COMPARED_FIELDS.items():
        if wire_name in ignored or attr in ignored:
            continue
        old = getattr(existing, attr)
        new = getattr(incoming, attr)
        if old != new:
            changes.append(FieldChange(
                field=wire_name,
                old_value=_wire_value(old),
                new_value=_wire_value(new),
            ))

    if "specs" in ignored:
        return changes

    keys = list(existing.specs)
    keys += [k for k in incoming.specs if k not in existing.specs]

    for key in keys:
        spec_field = f"{SPEC_PREFIX}{key}"
        if key in STAMPED_SPEC_KEYS or spec_field in ignored:
            continue
        old = existing.specs.get(key)
        new = incoming.specs.get(key)
        if not values_equal(old, new):
            changes.append(FieldChange(field=spec_field, old_value=old, new_value=new))

    return changes


def compare_prices(incoming: CanonicalProduct, existing: CanonicalProduct) -> list[PriceChange]:
    """New or changed incoming prices. Prices missing from incoming are left alone."""
    current = existing.price_map()
    changes: list[PriceChange] = []

    for price in incoming.prices:
        old = current.get(price.key)
        if old is None:
            changes.append(PriceChange(
                tier=price.tier,
                currency=price.currency,
                new_amount=price.amount,
            ))
        elif old.amount != price.amount:
            percent = None
            if old.amount:
                percent = round((price.amount - old.amount) / old.amount * 100, 2)
            changes.append(PriceChange(
                tier=price.tier,
                currency=price.currency,
                old_amount=old.amount,
                new_amount=price.amount,
                change_percent=percent,
            ))

    return changes


# ===================
# PREVIEW
# ===================

def summarize(preview: ImportPreview) -> PreviewSummary:
    """Counts straight from bucket sizes."""
    added = len(preview.adds)
    updated = len(preview.updates)
    price_only = len(preview.price_changes)
    return PreviewSummary(
        new_products=added,
        updated_products=updated,
        price_only_changes=price_only,
        to_discontinue=len(preview.discontinuations),
        unchanged=preview.total_incoming - added - updated - price_only,
    )


def generate_preview(
    incoming: list[CanonicalProduct],
    existing: list[CanonicalProduct],
    options: DiffOptions,
) -> ImportPreview:
    """
    Bucket incoming products against the vendor's persisted products.

    Args:
        incoming: Normalized batch (product ids unique)
        existing: Persisted products of the same vendor
        options: Vendor, effective date, ignore list, discontinue detection

    Returns:
        ImportPreview with recomputed summary
    """
    ignored = set(options.ignore_fields)
    existing_by_id = {p.product_id: p for p in existing}
    incoming_ids = {p.product_id for p in incoming}

    preview = ImportPreview(
        vendor_code=options.vendor_code,
        effective_from=options.effective_from,
        total_incoming=len(incoming),
        total_existing=len(existing),
    )

    for product in incoming:
        current = existing_by_id.get(product.product_id)
        if current is None:
            preview.adds.append(AddDiff(product_id=product.product_id, incoming=product))
            continue

        changes = compare_fields(product, current, options.ignore_fields)
        price_changes = [] if "prices" in ignored else compare_prices(product, current)

        if changes:
            preview.updates.append(UpdateDiff(
                product_id=product.product_id,
                incoming=product,
                existing=current,
                changes=changes,
                price_changes=price_changes,
            ))
        elif price_changes:
            preview.price_changes.append(PriceChangeDiff(
                product_id=product.product_id,
                incoming=product,
                existing=current,
                price_changes=price_changes,
            ))

    if options.detect_discontinued:
        for product in existing:
            if product.product_id in incoming_ids or product.status == ProductStatus.DISCONTINUED:
                continue
            preview.discontinuations.append(DiscontinueDiff(
                product_id=product.product_id,
                existing=product,
            ))

    preview.summary = summarize(preview)

    logger.info(
        "preview_generated",
        vendor_code=options.vendor_code,
        incoming=preview.total_incoming,
        existing=preview.total_existing,
        adds=preview.summary.new_products,
        updates=preview.summary.updated_products,
        price_changes=preview.summary.price_only_changes,
        discontinue=preview.summary.to_discontinue,
        unchanged=preview.summary.unchanged,
    )
    return preview


# ===================
# SAFETY TOGGLES
# ===================

def change_allowed(field_name: str, toggles: SafetyToggles) -> bool:
    """Whether a field change survives the toggles. Shared with the commit engine."""
    if toggles.prices_only and not field_name.startswith("price"):
        return False
    if toggles.specs_only and not field_name.startswith(SPEC_PREFIX):
        return False
    if toggles.dont_change_collections and field_name in COLLECTION_FIELDS:
        return False
    return True


def apply_safety_toggles(
    preview: ImportPreview,
    toggles: Optional[SafetyToggles],
) -> ImportPreview:
    """
    Narrow a preview with the user's toggles.

    Rules run in a fixed order: prices-only, specs-only, collection lock.
    An update emptied by prices-only moves to price_change when it has price
    deltas; one emptied by specs-only becomes unchanged. The collection lock
    strips fields but never moves an entry. The input preview is not modified.
    """
    result = preview.model_copy(deep=True)
    if toggles is None:
        return result

    updates: list[UpdateDiff] = []
    price_changes = list(result.price_changes)

    for update in result.updates:
        changes = update.changes
        deltas = update.price_changes

        if toggles.prices_only:
            changes = [c for c in changes if c.field.startswith("price")]
        if toggles.specs_only:
            changes = [c for c in changes if c.field.startswith(SPEC_PREFIX)]
            deltas = []

        if not changes:
            if deltas:
                price_changes.append(PriceChangeDiff(
                    product_id=update.product_id,
                    incoming=update.incoming,
                    existing=update.existing,
                    price_changes=deltas,
                ))
            continue

        if toggles.dont_change_collections:
            changes = [c for c in changes if c.field not in COLLECTION_FIELDS]

        updates.append(update.model_copy(update={"changes": changes, "price_changes": deltas}))

    result.updates = updates
    result.price_changes = [] if toggles.specs_only else price_changes
    result.summary = summarize(result)

    logger.debug(
        "safety_toggles_applied",
        vendor_code=result.vendor_code,
        toggles=toggles.model_dump(),
        summary=result.summary.model_dump(),
    )
    return result
