"""
Normalizer service: applies a vendor mapping to raw rows.

Produces canonical products. A row that cannot be normalized (no SKU, no
name, duplicate SKU, failing transform) is skipped and reported; the batch
carries on.
"""

from dataclasses import dataclass, field
from typing import Any, Optional
import structlog

from config import settings
from exceptions import AppError, MappingValidationError, RowSkipped, TransformError
from models.catalog import (
    CanonicalProduct,
    ProductPrice,
    ProductStatus,
    make_product_id,
    price_key,
)
from models.imports import SkippedRow
from models.mapping import (
    FieldMapping,
    JsonShape,
    MappingTestResult,
    VendorMapping,
)
from parsers.shape_detector import ExtractedRow, detect_shape, extract_rows
from utils.transforms import (
    apply_transforms,
    as_text,
    is_number,
    normalize_status,
    parse_number,
    slugify,
)

logger = structlog.get_logger(__name__)


@dataclass
class NormalizeResult:
    """Products that normalized cleanly plus the rows that did not."""
    shape: JsonShape
    products: list[CanonicalProduct] = field(default_factory=list)
    skipped: list[SkippedRow] = field(default_factory=list)

    @property
    def total_rows(self) -> int:
        return len(self.products) + len(self.skipped)


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class NormalizerService:
    """Mapping validation and row normalization."""

    # ===================
    # VALIDATION
    # ===================

    def validate_mapping(self, mapping: VendorMapping) -> list[str]:
        """
        Pre-flight check. An empty list means the mapping can normalize.
        """
        errors: list[str] = []

        if mapping.sku is None:
            errors.append("SKU mapping is required")
        elif mapping.sku.type == "column" and not mapping.sku.column:
            errors.append('SKU column name is required when type is "column"')

        if mapping.name is None or (mapping.name.type == "column" and not mapping.name.column):
            errors.append("Name mapping with column is required")

        if mapping.collection is None or (
            mapping.collection.type == "column" and not mapping.collection.column
        ):
            errors.append("Collection mapping with column is required")

        if not mapping.prices:
            errors.append("At least one price mapping is required")
        else:
            for number, price in enumerate(mapping.prices, start=1):
                if not price.tier:
                    errors.append(f"Price mapping {number}: tier is required")
                if not price.currency:
                    errors.append(f"Price mapping {number}: currency is required")
                if price.type == "column" and not price.column:
                    errors.append(f"Price mapping {number}: column is required")

        return errors

    # ===================
    # NORMALIZATION
    # ===================

    def normalize(
        self,
        payload: Any,
        mapping: VendorMapping,
        vendor_code: Optional[str] = None,
    ) -> NormalizeResult:
        """
        Normalize a raw payload.

        Args:
            payload: Parsed JSON (array or flat shape)
            mapping: Vendor mapping; its shape overrides detection
            vendor_code: Vendor the products belong to (defaults to the
                mapping's vendor)

        Raises:
            MappingValidationError: Mapping failed the pre-flight check
            ShapeError: Payload shape not recognized
        """
        errors = self.validate_mapping(mapping)
        if errors:
            logger.warning("mapping_invalid", vendor_code=mapping.vendor_code, errors=errors)
            raise MappingValidationError(errors)

        vendor_code = vendor_code or mapping.vendor_code
        shape = mapping.shape or detect_shape(payload)
        rows = extract_rows(payload, shape)

        result = NormalizeResult(shape=shape)
        seen: set[str] = set()

        for index, extracted in enumerate(rows):
            try:
                product = self.normalize_row(extracted, mapping, vendor_code)
                if product.product_id in seen:
                    raise RowSkipped(f"duplicate SKU {product.sku}", extracted.intrinsic_key)
            except RowSkipped as e:
                logger.warning(
                    "row_skipped",
                    index=index,
                    key=extracted.intrinsic_key,
                    reason=e.reason,
                )
                result.skipped.append(SkippedRow(
                    index=index,
                    intrinsic_key=extracted.intrinsic_key,
                    reason=e.reason,
                ))
                continue

            seen.add(product.product_id)
            result.products.append(product)

        logger.info(
            "payload_normalized",
            vendor_code=vendor_code,
            shape=shape.value,
            rows=len(rows),
            products=len(result.products),
            skipped=len(result.skipped),
        )
        return result

    def normalize_row(
        self,
        extracted: ExtractedRow,
        mapping: VendorMapping,
        vendor_code: str,
    ) -> CanonicalProduct:
        """
        Normalize one row.

        Raises:
            RowSkipped: Row cannot become a product
        """
        try:
            return self._build_product(extracted, mapping, vendor_code)
        except TransformError as e:
            raise RowSkipped(f"transform failed: {e.message}", extracted.intrinsic_key) from e
        except ValueError as e:
            # pydantic rejected the assembled record
            raise RowSkipped(f"invalid product: {e}", extracted.intrinsic_key) from e

    def _build_product(
        self,
        extracted: ExtractedRow,
        mapping: VendorMapping,
        vendor_code: str,
    ) -> CanonicalProduct:
        row = extracted.row

        sku = extracted.intrinsic_key
        if _blank(sku):
            sku = self._extract_field(row, mapping.sku)
        if _blank(sku):
            raise RowSkipped("missing SKU")
        sku = as_text(sku).strip()

        name = self._extract_field(row, mapping.name)
        if _blank(name):
            raise RowSkipped(f"missing name for SKU {sku}", extracted.intrinsic_key)

        collection_name = self._extract_field(row, mapping.collection)
        collection_name = None if _blank(collection_name) else as_text(collection_name).strip()

        return CanonicalProduct(
            product_id=make_product_id(vendor_code, sku),
            vendor_code=vendor_code,
            sku=sku,
            name=as_text(name).strip(),
            collection_name=collection_name,
            collection_code=(slugify(collection_name) or None) if collection_name else None,
            status=self._resolve_status(row, mapping),
            prices=self._resolve_prices(row, mapping),
            specs=self._resolve_specs(row, mapping),
        )

    def _extract_field(self, row: dict, mapping: Optional[FieldMapping]) -> Any:
        if mapping is None:
            return None

        if mapping.type == "flat_key" or not mapping.column:
            return mapping.default_value

        value = row.get(mapping.column)
        if value is None:
            value = mapping.default_value

        return apply_transforms(value, mapping.transforms)

    def _resolve_status(self, row: dict, mapping: VendorMapping) -> ProductStatus:
        if mapping.status is None:
            return ProductStatus.ACTIVE

        raw = self._extract_field(row, mapping.status)
        if _blank(raw):
            return ProductStatus.ACTIVE

        enum_map = mapping.status.enum_map or {}
        if as_text(raw) in enum_map:
            return enum_map[as_text(raw)]

        return normalize_status(raw)

    def _resolve_prices(self, row: dict, mapping: VendorMapping) -> list[ProductPrice]:
        prices: dict[str, ProductPrice] = {}

        for price_mapping in mapping.prices:
            amount = self._extract_field(row, price_mapping)
            if amount is None:
                continue
            if not is_number(amount):
                amount = parse_number(amount)
            if amount <= 0:
                continue

            price = ProductPrice(
                tier=price_mapping.tier,
                currency=price_mapping.currency,
                amount=float(amount),
            )
            prices[price_key(price.tier, price.currency)] = price

        return list(prices.values())

    def _resolve_specs(self, row: dict, mapping: VendorMapping) -> dict[str, Any]:
        specs: dict[str, Any] = {}

        for spec_mapping in mapping.specs:
            value = apply_transforms(row.get(spec_mapping.column), spec_mapping.transforms)
            if value is not None:
                specs[spec_mapping.canonical_key] = value

        return specs

    # ===================
    # DRY RUN
    # ===================

    def test_mapping(
        self,
        payload: Any,
        mapping: VendorMapping,
        vendor_code: Optional[str] = None,
        max_rows: Optional[int] = None,
    ) -> MappingTestResult:
        """Validate and normalize without touching the catalog. Never raises."""
        errors = self.validate_mapping(mapping)
        if errors:
            return MappingTestResult(success=False, errors=errors)

        try:
            result = self.normalize(payload, mapping, vendor_code)
        except AppError as e:
            return MappingTestResult(success=False, errors=[e.message])

        return MappingTestResult(
            success=True,
            samples=result.products[: max_rows or settings.mapping_test_rows],
            total_normalized=len(result.products),
            skipped=len(result.skipped),
        )
