"""
Product stock resolver.

Responsibility:
    One read API over the three stock shapes a product can have (variants,
    legacy size options, flat warehouse stock). Every function dispatches
    on ``Product.stock_model`` exhaustively.

Architecture position:
    Engines -- pure calculation, zero I/O.

Rules:
    - Variants: only ACTIVE variants count. Inactive ones keep their stock
      history but contribute zero.
    - Legacy size options: every option counts; there is no active flag.
    - Flat: the product's own warehouse stock.
    - In every shape only the counted warehouses are summed: the optional
      ``warehouses`` argument, defaulting to every physical warehouse.
    - ``Product.active`` does not gate stock: an inactive product still
      reports what is physically held.

Failure modes:
    - Lookup helpers (``find_variant``, ``get_variant_by_id``) return None.
      ``require_*`` helpers raise the matching NotFoundError for mutation
      callers.
    - InvariantViolation (bad batch or drifted flat totals) propagates from
      aggregation.
"""

from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass
from typing import assert_never

from stock_engines.aggregation import (
    WarehouseTotals,
    available,
    known_warehouse_stocks,
    summarize_warehouse,
    total_available,
)
from stock_kernel.domain.catalog import (
    FlatStockModel,
    LegacySizeOption,
    LegacySizeStockModel,
    Product,
    Variant,
    VariantStockModel,
)
from stock_kernel.domain.stock import WarehouseStock
from stock_kernel.exceptions import (
    SizeOptionNotFoundError,
    StockModelMismatchError,
    VariantNotFoundError,
)


@dataclass(frozen=True, slots=True)
class StockUnit:
    """Availability of one sellable unit (variant, size option or product)."""

    unit_id: str | None
    label: str
    active: bool
    available: int
    warehouses: tuple[WarehouseTotals, ...]


# ---------------------------------------------------------------------------
# Per-unit stock
# ---------------------------------------------------------------------------


def get_variant_stock(variant: Variant, warehouses: Collection[str] | None = None) -> int:
    """Available units of a variant across the counted warehouses."""
    return total_available(variant.warehouse_stock, warehouses)


def get_variant_warehouse_stock(variant: Variant, warehouse: str) -> int:
    for ws in variant.warehouse_stock:
        if ws.warehouse == warehouse:
            return available(ws)
    return 0


def get_size_option_stock(option: LegacySizeOption, warehouses: Collection[str] | None = None) -> int:
    return total_available(option.warehouse_stock, warehouses)


def get_total_stock(product: Product, warehouses: Collection[str] | None = None) -> int:
    """Total available-to-sell for a product, whatever its stock shape."""
    match product.stock_model:
        case VariantStockModel(variants=variants):
            return sum(get_variant_stock(v, warehouses) for v in variants if v.active)
        case LegacySizeStockModel(size_options=options):
            return sum(get_size_option_stock(o, warehouses) for o in options)
        case FlatStockModel(warehouse_stock=stocks):
            return total_available(stocks, warehouses)
        case _ as unreachable:
            assert_never(unreachable)


def is_product_in_stock(product: Product, warehouses: Collection[str] | None = None) -> bool:
    return get_total_stock(product, warehouses) > 0


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


def _variants(product: Product) -> tuple[Variant, ...]:
    if isinstance(product.stock_model, VariantStockModel):
        return product.stock_model.variants
    return ()


def find_variant(product: Product, size: str | None, color: str) -> Variant | None:
    """
    Active variant matching ``(size, color)`` exactly.

    Single-size products store no size; they match a query with
    ``size=None``. An empty string is treated the same as None.
    """
    wanted_size = size or None
    for variant in _variants(product):
        if variant.active and (variant.size or None) == wanted_size and variant.color == color:
            return variant
    return None


def get_variant_by_id(product: Product, variant_id: str) -> Variant | None:
    for variant in _variants(product):
        if variant.id == variant_id:
            return variant
    return None


def get_size_option(product: Product, label: str) -> LegacySizeOption | None:
    if isinstance(product.stock_model, LegacySizeStockModel):
        for option in product.stock_model.size_options:
            if option.label == label:
                return option
    return None


def require_variant(product: Product, variant_id: str) -> Variant:
    if not isinstance(product.stock_model, VariantStockModel):
        raise StockModelMismatchError(
            product.id, product.stock_model_kind, "product has no variants",
        )
    variant = get_variant_by_id(product, variant_id)
    if variant is None:
        raise VariantNotFoundError(product.id, variant_id)
    return variant


def require_size_option(product: Product, label: str) -> LegacySizeOption:
    if not isinstance(product.stock_model, LegacySizeStockModel):
        raise StockModelMismatchError(
            product.id, product.stock_model_kind, "product has no size options",
        )
    option = get_size_option(product, label)
    if option is None:
        raise SizeOptionNotFoundError(product.id, label)
    return option


def product_sizes(product: Product) -> list[str]:
    """Distinct sizes of active variants, first-seen order."""
    sizes: list[str] = []
    for variant in _variants(product):
        if variant.active and variant.size and variant.size not in sizes:
            sizes.append(variant.size)
    return sizes


def product_colors(product: Product) -> list[str]:
    """Distinct colours of active variants, first-seen order."""
    colors: list[str] = []
    for variant in _variants(product):
        if variant.active and variant.color not in colors:
            colors.append(variant.color)
    return colors


# ---------------------------------------------------------------------------
# Unit breakdown
# ---------------------------------------------------------------------------


def _warehouse_totals(
    stocks: tuple[WarehouseStock, ...],
    warehouses: Collection[str] | None,
) -> tuple[WarehouseTotals, ...]:
    return tuple(summarize_warehouse(ws) for ws in known_warehouse_stocks(stocks, warehouses))


def stock_units(product: Product, warehouses: Collection[str] | None = None) -> tuple[StockUnit, ...]:
    """Per-unit availability with per-warehouse totals."""
    match product.stock_model:
        case VariantStockModel(variants=variants):
            return tuple(
                StockUnit(
                    unit_id=v.id,
                    label=v.label,
                    active=v.active,
                    available=get_variant_stock(v, warehouses) if v.active else 0,
                    warehouses=_warehouse_totals(v.warehouse_stock, warehouses),
                )
                for v in variants
            )
        case LegacySizeStockModel(size_options=options):
            return tuple(
                StockUnit(
                    unit_id=o.label,
                    label=o.label,
                    active=True,
                    available=get_size_option_stock(o, warehouses),
                    warehouses=_warehouse_totals(o.warehouse_stock, warehouses),
                )
                for o in options
            )
        case FlatStockModel(warehouse_stock=stocks):
            return (
                StockUnit(
                    unit_id=None,
                    label=product.name,
                    active=product.active,
                    available=total_available(stocks, warehouses),
                    warehouses=_warehouse_totals(stocks, warehouses),
                ),
            )
        case _ as unreachable:
            assert_never(unreachable)


def sellable_warehouse_stocks(
    product: Product,
    variant_id: str | None = None,
    size_label: str | None = None,
) -> tuple[WarehouseStock, ...]:
    """
    Warehouse entries an order line may draw from.

    A lookup miss, an inactive variant or a unit selector that does not fit
    the product's shape yields ``()``: for availability that means no stock.
    """
    match product.stock_model:
        case VariantStockModel():
            if variant_id is None:
                return ()
            variant = get_variant_by_id(product, variant_id)
            if variant is None or not variant.active:
                return ()
            return variant.warehouse_stock
        case LegacySizeStockModel():
            if size_label is None:
                return ()
            option = get_size_option(product, size_label)
            return option.warehouse_stock if option is not None else ()
        case FlatStockModel(warehouse_stock=stocks):
            if variant_id is not None or size_label is not None:
                return ()
            return stocks
        case _ as unreachable:
            assert_never(unreachable)
