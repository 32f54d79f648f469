"""
Canonical product schemas.

A canonical product is the vendor-agnostic record produced by the
normalizer and persisted in the catalog snapshot.
"""

from pydantic import Field
from typing import Any, Optional
from enum import Enum

from models.base import BaseSchema


class ProductStatus(str, Enum):
    """Product lifecycle status."""
    ACTIVE = "active"
    DISCONTINUED = "discontinued"
    ARCHIVED = "archived"


def price_key(tier: str, currency: str) -> str:
    """Identity of a price inside a product's price set."""
    return f"{tier}:{currency}"


def make_product_id(vendor_code: str, sku: str) -> str:
    """Catalog-wide product identity."""
    return f"{vendor_code}:{sku}"


class ProductPrice(BaseSchema):
    """One price point, unique per (tier, currency) within a product."""

    tier: str = Field(..., min_length=1, description="Price class, e.g. MSRP or Dealer")
    currency: str = Field(..., min_length=1, description="ISO currency code")
    amount: float = Field(..., description="Price amount")

    @property
    def key(self) -> str:
        return price_key(self.tier, self.currency)


class CanonicalProduct(BaseSchema):
    """
    Normalized product record.

    product_id is "<vendor_code>:<sku>" and unique within a vendor catalog.
    """

    product_id: str = Field(..., description="vendor_code:sku")
    vendor_code: str = Field(..., min_length=1)
    sku: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    collection_code: Optional[str] = Field(None, description="Slug derived from collection_name")
    collection_name: Optional[str] = None
    status: ProductStatus = ProductStatus.ACTIVE
    prices: list[ProductPrice] = Field(default_factory=list)
    specs: dict[str, Any] = Field(default_factory=dict)

    def price_map(self) -> dict[str, ProductPrice]:
        """Prices keyed by tier:currency."""
        return {p.key: p for p in self.prices}
