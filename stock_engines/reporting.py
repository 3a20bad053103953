"""
Stock status and the admin inventory summary.

Pure roll-ups over products for the inventory screen: a per-product status
label and catalog-wide on-hand totals per warehouse. ``warehouses`` limits
both to the counted warehouses and defaults to every physical one.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import assert_never

from stock_engines.aggregation import total_quantity
from stock_engines.resolver import get_total_stock
from stock_kernel.domain.catalog import (
    FlatStockModel,
    LegacySizeStockModel,
    Product,
    VariantStockModel,
)
from stock_kernel.domain.stock import Warehouse, WarehouseStock

DEFAULT_LOW_STOCK_THRESHOLD = 10


class StockStatus(str, Enum):
    IN_STOCK = "In Stock"
    LOW_STOCK = "Low Stock"
    OUT_OF_STOCK = "Out of Stock"


def stock_status(available: int, threshold: int = DEFAULT_LOW_STOCK_THRESHOLD) -> StockStatus:
    if available <= 0:
        return StockStatus.OUT_OF_STOCK
    if available <= threshold:
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK


def product_stock_status(
    product: Product,
    threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
    warehouses: Collection[str] | None = None,
) -> StockStatus:
    return stock_status(get_total_stock(product, warehouses), threshold)


@dataclass(frozen=True, slots=True)
class InventorySummary:
    """
    Catalog-wide figures for the inventory dashboard.

    ``on_hand_by_warehouse`` counts physical units (reserved included);
    the low/out counts are based on available-to-sell.
    """

    on_hand_by_warehouse: dict[str, int] = field(default_factory=dict)
    low_stock_products: int = 0
    out_of_stock_products: int = 0
    product_count: int = 0

    @property
    def total_on_hand(self) -> int:
        return sum(self.on_hand_by_warehouse.values())


def _counted_stocks(product: Product) -> Iterator[WarehouseStock]:
    match product.stock_model:
        case VariantStockModel(variants=variants):
            for variant in variants:
                if variant.active:
                    yield from variant.warehouse_stock
        case LegacySizeStockModel(size_options=options):
            for option in options:
                yield from option.warehouse_stock
        case FlatStockModel(warehouse_stock=stocks):
            yield from stocks
        case _ as unreachable:
            assert_never(unreachable)


def inventory_summary(
    products: Iterable[Product],
    threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
    warehouses: Collection[str] | None = None,
) -> InventorySummary:
    names = Warehouse.names() if warehouses is None else warehouses
    on_hand = {name: 0 for name in names}
    low = out = count = 0
    for product in products:
        count += 1
        for ws in _counted_stocks(product):
            if ws.warehouse in on_hand:
                on_hand[ws.warehouse] += total_quantity(ws)
        status = product_stock_status(product, threshold, warehouses)
        if status is StockStatus.LOW_STOCK:
            low += 1
        elif status is StockStatus.OUT_OF_STOCK:
            out += 1
    return InventorySummary(
        on_hand_by_warehouse=on_hand,
        low_stock_products=low,
        out_of_stock_products=out,
        product_count=count,
    )
