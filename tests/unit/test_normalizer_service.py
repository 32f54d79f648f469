"""
Unit tests for NormalizerService.

Covers mapping validation, per-row normalization and soft row skips.
"""

import pytest

from exceptions import MappingValidationError, ShapeError
from models.catalog import ProductStatus
from models.mapping import (
    FieldMapping,
    JsonShape,
    PriceMapping,
    SpecMapping,
    Transform,
    VendorMapping,
)
from services.normalizer_service import NormalizerService
from tests.factories import MappingFactory, PayloadFactory


@pytest.fixture
def normalizer() -> NormalizerService:
    return NormalizerService()


# ===================
# VALIDATION TESTS
# ===================

class TestValidateMapping:
    """Tests for the pre-flight mapping check."""

    def test_valid(self, normalizer):
        assert normalizer.validate_mapping(MappingFactory.create()) == []

    def test_empty_mapping_lists_every_problem(self, normalizer):
        errors = normalizer.validate_mapping(VendorMapping(vendor_code="acme"))
        assert errors == [
            "SKU mapping is required",
            "Name mapping with column is required",
            "Collection mapping with column is required",
            "At least one price mapping is required",
        ]

    def test_sku_column_required_for_column_type(self, normalizer):
        mapping = MappingFactory.create(sku=FieldMapping(type="column"))
        assert normalizer.validate_mapping(mapping) == [
            'SKU column name is required when type is "column"'
        ]

    def test_price_mapping_fields(self, normalizer):
        mapping = MappingFactory.create(prices=[
            PriceMapping(column="MSRP", tier="MSRP", currency="USD"),
            PriceMapping(type="column"),
        ])
        assert normalizer.validate_mapping(mapping) == [
            "Price mapping 2: tier is required",
            "Price mapping 2: currency is required",
            "Price mapping 2: column is required",
        ]

    def test_normalize_blocked_by_invalid_mapping(self, normalizer):
        with pytest.raises(MappingValidationError) as exc:
            normalizer.normalize({"A": {}}, VendorMapping(vendor_code="acme"))
        assert len(exc.value.errors) == 4


# ===================
# NORMALIZATION TESTS
# ===================

class TestNormalize:
    """Tests for normalize()."""

    def test_flat_payload(self, normalizer):
        """Flat keys become SKUs; price text is parsed."""
        payload = PayloadFactory.flat({"ABC-1": PayloadFactory.row()})

        result = normalizer.normalize(payload, MappingFactory.create(), "acme")

        assert result.shape == JsonShape.FLAT
        assert result.skipped == []
        product = result.products[0]
        assert product.product_id == "acme:ABC-1"
        assert product.sku == "ABC-1"
        assert product.name == "Widget"
        assert product.collection_name == "Alpha"
        assert product.collection_code == "alpha"
        assert product.status == ProductStatus.ACTIVE
        assert [(p.tier, p.currency, p.amount) for p in product.prices] == [("MSRP", "USD", 10.0)]

    def test_array_payload(self, normalizer):
        payload = PayloadFactory.array({"A-1": PayloadFactory.row(), "A-2": PayloadFactory.row(name="Gadget")})

        result = normalizer.normalize(payload, MappingFactory.array(), "acme")

        assert [p.product_id for p in result.products] == ["acme:A-1", "acme:A-2"]

    def test_vendor_defaults_to_mapping(self, normalizer):
        payload = PayloadFactory.flat({"A": PayloadFactory.row()})
        result = normalizer.normalize(payload, MappingFactory.create(vendor_code="lib"))
        assert result.products[0].product_id == "lib:A"

    def test_intrinsic_key_beats_sku_column(self, normalizer):
        """Flat keys win over a configured SKU column."""
        payload = {"KEY-1": PayloadFactory.row(**{"Item Number": "COL-1"})}
        mapping = MappingFactory.array()

        result = normalizer.normalize(payload, mapping, "acme")

        assert result.products[0].sku == "KEY-1"

    def test_numeric_sku_stringified(self, normalizer):
        payload = [{"Item Number": 1001.0, **PayloadFactory.row()}]
        result = normalizer.normalize(payload, MappingFactory.array(), "acme")
        assert result.products[0].sku == "1001"

    def test_padded_column_names(self, normalizer):
        """Vendor headers with stray spaces are matched as written."""
        mapping = MappingFactory.create(
            name_column="Product Name ",
            specs=[SpecMapping(column=" Width", canonical_key="Width")],
        )
        payload = {"A-1": {"Product Name ": "Widget", "Theme": "Alpha", "List Price": "$10", " Width": "12in"}}

        result = normalizer.normalize(payload, mapping, "acme")

        assert mapping.name.column == "Product Name "
        assert result.skipped == []
        assert result.products[0].name == "Widget"
        assert result.products[0].specs == {"Width": "12in"}

    def test_shape_override_mismatch(self, normalizer):
        mapping = MappingFactory.create(shape=JsonShape.ARRAY)
        with pytest.raises(ShapeError):
            normalizer.normalize({"A": PayloadFactory.row()}, mapping, "acme")

    def test_unrecognized_payload(self, normalizer):
        with pytest.raises(ShapeError):
            normalizer.normalize("not json rows", MappingFactory.create(), "acme")


class TestRowSkips:
    """Soft failures: the row is reported, the batch continues."""

    def test_missing_sku(self, normalizer):
        payload = [{"Item Number": "  ", **PayloadFactory.row()}, {"Item Number": "A-2", **PayloadFactory.row()}]

        result = normalizer.normalize(payload, MappingFactory.array(), "acme")

        assert [p.sku for p in result.products] == ["A-2"]
        assert result.skipped[0].index == 0
        assert result.skipped[0].reason == "missing SKU"

    def test_missing_name(self, normalizer):
        payload = {"A-1": PayloadFactory.row(name="   "), "A-2": PayloadFactory.row()}

        result = normalizer.normalize(payload, MappingFactory.create(), "acme")

        assert [p.sku for p in result.products] == ["A-2"]
        assert result.skipped[0].intrinsic_key == "A-1"
        assert "missing name" in result.skipped[0].reason

    def test_duplicate_sku_keeps_first(self, normalizer):
        payload = PayloadFactory.array({"A-1": PayloadFactory.row(name="First")})
        payload.append({"Item Number": "A-1", **PayloadFactory.row(name="Second")})

        result = normalizer.normalize(payload, MappingFactory.array(), "acme")

        assert [p.name for p in result.products] == ["First"]
        assert result.skipped[0].index == 1
        assert "duplicate" in result.skipped[0].reason

    def test_transform_failure_skips_row(self, normalizer):
        mapping = MappingFactory.create(specs=[
            SpecMapping(column="Code", canonical_key="code", transforms=[Transform(type="regex", pattern="(")]),
        ])
        payload = {"A-1": PayloadFactory.row(Code="x"), "A-2": PayloadFactory.row()}

        result = normalizer.normalize(payload, mapping, "acme")

        # A-2 has no Code, so its chain never runs
        assert [p.sku for p in result.products] == ["A-2"]
        assert result.skipped[0].reason.startswith("transform failed")


class TestFieldResolution:
    """Tests for collection, status, price and spec resolution."""

    def test_collection_slug(self, normalizer):
        payload = {"A": PayloadFactory.row(theme="Alpha & Omega Series")}
        product = normalizer.normalize(payload, MappingFactory.create(), "acme").products[0]
        assert product.collection_code == "alpha-omega-series"

    def test_missing_collection_is_none(self, normalizer):
        payload = {"A": PayloadFactory.row(theme=None)}
        product = normalizer.normalize(payload, MappingFactory.create(), "acme").products[0]
        assert product.collection_name is None
        assert product.collection_code is None

    def test_status_default_normalization(self, normalizer):
        payload = {"A": PayloadFactory.row(Status="Disc"), "B": PayloadFactory.row(Status="weird")}
        mapping = MappingFactory.create(status_column="Status")

        products = normalizer.normalize(payload, mapping, "acme").products

        assert [p.status for p in products] == [ProductStatus.DISCONTINUED, ProductStatus.ACTIVE]

    def test_status_enum_map_first(self, normalizer):
        """The vendor remap table wins over default normalization."""
        payload = {"A": PayloadFactory.row(Status="N"), "B": PayloadFactory.row(Status="yes")}
        mapping = MappingFactory.create(status_column="Status", status_enum_map={"N": "archived"})

        products = normalizer.normalize(payload, mapping, "acme").products

        assert [p.status for p in products] == [ProductStatus.ARCHIVED, ProductStatus.ACTIVE]

    def test_non_positive_prices_dropped(self, normalizer):
        mapping = MappingFactory.create(prices=[
            PriceMapping(column="List Price", tier="MSRP", currency="USD"),
            PriceMapping(column="Dealer", tier="Dealer", currency="USD"),
            PriceMapping(column="CAD", tier="MSRP", currency="CAD"),
        ])
        payload = {"A": PayloadFactory.row(price="0", Dealer=-5, CAD="n/a")}

        product = normalizer.normalize(payload, mapping, "acme").products[0]

        assert product.prices == []

    def test_price_strings_parsed_without_transform(self, normalizer):
        mapping = MappingFactory.create(prices=[
            PriceMapping(column="List Price", tier="MSRP", currency="USD"),
        ])
        payload = {"A": PayloadFactory.row(price="1,250.00")}

        product = normalizer.normalize(payload, mapping, "acme").products[0]

        assert product.prices[0].amount == 1250.0

    def test_duplicate_price_key_keeps_last(self, normalizer):
        mapping = MappingFactory.create(prices=[
            PriceMapping(column="List Price", tier="MSRP", currency="USD"),
            PriceMapping(column="Promo", tier="MSRP", currency="USD"),
        ])
        payload = {"A": PayloadFactory.row(price=10, Promo=8)}

        product = normalizer.normalize(payload, mapping, "acme").products[0]

        assert [p.amount for p in product.prices] == [8.0]

    def test_price_default_value(self, normalizer):
        mapping = MappingFactory.create(prices=[
            PriceMapping(column="List Price", tier="MSRP", currency="USD", default_value=99),
        ])
        payload = {"A": PayloadFactory.row(price=None)}

        product = normalizer.normalize(payload, mapping, "acme").products[0]

        assert product.prices[0].amount == 99.0

    def test_specs_skip_nulls(self, normalizer):
        mapping = MappingFactory.create(specs=[
            SpecMapping(column="Width", canonical_key="Width"),
            SpecMapping(column="Height", canonical_key="height", transforms=[Transform(type="strip_units"), Transform(type="number")]),
        ])
        payload = {"A": PayloadFactory.row(Width=None, Height="24 in")}

        product = normalizer.normalize(payload, mapping, "acme").products[0]

        assert product.specs == {"height": 24.0}


# ===================
# DRY RUN TESTS
# ===================

class TestTestMapping:
    """Tests for test_mapping()."""

    def test_samples_limited(self, normalizer):
        payload = {f"A-{i}": PayloadFactory.row() for i in range(5)}

        result = normalizer.test_mapping(payload, MappingFactory.create(), max_rows=2)

        assert result.success is True
        assert len(result.samples) == 2
        assert result.total_normalized == 5

    def test_invalid_mapping_reported(self, normalizer):
        result = normalizer.test_mapping({"A": {}}, VendorMapping(vendor_code="acme"))
        assert result.success is False
        assert "SKU mapping is required" in result.errors

    def test_bad_shape_reported(self, normalizer):
        result = normalizer.test_mapping(42, MappingFactory.create())
        assert result.success is False
        assert result.errors == ["unrecognized JSON structure"]

    def test_skips_counted(self, normalizer):
        payload = {"A": PayloadFactory.row(name=""), "B": PayloadFactory.row()}
        result = normalizer.test_mapping(payload, MappingFactory.create())
        assert result.total_normalized == 1
        assert result.skipped == 1
