"""
Catalog value objects: products, variants and the stock model union.

Responsibility:
    Describe a sellable product together with the one shape its stock is
    stored in. Three shapes exist for backward compatibility:

    * ``VariantStockModel``    -- colour/size variants, each with warehouse stock
    * ``LegacySizeStockModel`` -- pre-variant size options keyed by label
    * ``FlatStockModel``       -- a single warehouse stock list for the product

    ``StockModel`` is an explicit tagged union of the three, so dispatch in
    the resolver is exhaustive instead of probing optional fields.

Architecture position:
    Kernel > Domain -- pure data, zero I/O.

Round-trip guarantee:
    ``extras`` on Product, Variant and LegacySizeOption hold every persisted
    field the allocation engine does not interpret. Serialization writes
    them back untouched.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any, ClassVar

from stock_kernel.domain.stock import WarehouseStock


@dataclass(frozen=True, slots=True)
class Variant:
    """A colour/size combination with independent price and stock."""

    id: str
    color: str
    price: float
    active: bool
    warehouse_stock: tuple[WarehouseStock, ...] = field(default_factory=tuple)
    size: str | None = None
    extras: Mapping[str, Any] = field(default_factory=dict)

    @property
    def label(self) -> str:
        return f"{self.size or 'One Size'} / {self.color}"


@dataclass(frozen=True, slots=True)
class LegacySizeOption:
    """Pre-variant stock keyed by size label only (no colour axis)."""

    label: str
    price: float
    warehouse_stock: tuple[WarehouseStock, ...] = field(default_factory=tuple)
    extras: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class VariantStockModel:
    kind: ClassVar[str] = "variants"

    variants: tuple[Variant, ...]


@dataclass(frozen=True, slots=True)
class LegacySizeStockModel:
    kind: ClassVar[str] = "legacy_sizes"

    size_options: tuple[LegacySizeOption, ...]


@dataclass(frozen=True, slots=True)
class FlatStockModel:
    kind: ClassVar[str] = "flat"

    warehouse_stock: tuple[WarehouseStock, ...] = field(default_factory=tuple)


StockModel = VariantStockModel | LegacySizeStockModel | FlatStockModel


@dataclass(frozen=True, slots=True)
class Product:
    """
    A catalog product and the stock model it uses.

    ``active`` is the product-level soft delete. Inactive products keep
    their stock history.
    """

    id: int
    name: str
    category: str
    stock_model: StockModel
    active: bool = True
    extras: Mapping[str, Any] = field(default_factory=dict)

    @property
    def stock_model_kind(self) -> str:
        return self.stock_model.kind

    def with_stock_model(self, stock_model: StockModel) -> Product:
        return replace(self, stock_model=stock_model)


_SLUG_WHITESPACE = re.compile(r"\s+")


def generate_variant_id(size: str | None, color: str) -> str:
    """Build a variant id such as ``small-walnut`` or ``one-size-beige``."""
    size_slug = _SLUG_WHITESPACE.sub("-", size.lower()) if size else "one-size"
    color_slug = _SLUG_WHITESPACE.sub("-", color.lower())
    return f"{size_slug}-{color_slug}"
