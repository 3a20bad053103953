"""
stock_services.inventory_report_service -- Read-side inventory views.

Responsibility:
    Answer the admin inventory screen's questions from the catalog: the
    per-warehouse summary, a product's stock status and unit breakdown,
    its FIFO batch history, and checkout's allocation plan. Thresholds,
    the counted warehouses and the legacy batch label come from
    InventoryConfig.

Architecture position:
    Services -- reads through the ProductCatalog and delegates every
    calculation to ``stock_engines``. Never writes.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from stock_config.schema import InventoryConfig
from stock_engines.allocation import (
    AllocationResult,
    AvailabilityResult,
    StockRequest,
    allocate_warehouse_sources,
    validate_stock_availability,
)
from stock_engines.fifo import (
    BatchHistoryEntry,
    RecentBatchInfo,
    batch_history,
    most_recent_batch,
)
from stock_engines.reporting import (
    InventorySummary,
    StockStatus,
    inventory_summary,
    product_stock_status,
)
from stock_engines.resolver import (
    StockUnit,
    get_total_stock,
    require_size_option,
    require_variant,
    sellable_warehouse_stocks,
    stock_units,
)
from stock_kernel.domain.catalog import FlatStockModel
from stock_kernel.domain.stock import WarehouseStock
from stock_kernel.exceptions import StockModelMismatchError
from stock_kernel.logging_config import get_logger
from stock_services.catalog import ProductCatalog

logger = get_logger("services.inventory_report")


@dataclass(frozen=True, slots=True)
class ProductStockReport:
    """Everything the inventory screen shows for one product."""

    product_id: int
    name: str
    available: int
    status: StockStatus
    units: tuple[StockUnit, ...]


class InventoryReportService:
    """Inventory read models over a ProductCatalog."""

    def __init__(self, catalog: ProductCatalog, config: InventoryConfig | None = None):
        self._catalog = catalog
        self._config = config or InventoryConfig()

    def summary(self) -> InventorySummary:
        products = self._catalog.get_products()
        result = inventory_summary(
            products, self._config.low_stock_threshold, self._config.warehouses,
        )
        logger.debug("inventory_summary_built", extra={
            "product_count": result.product_count,
            "low_stock_products": result.low_stock_products,
            "out_of_stock_products": result.out_of_stock_products,
        })
        return result

    def product_report(self, product_id: int) -> ProductStockReport:
        product = self._catalog.get_product(product_id)
        warehouses = self._config.warehouses
        return ProductStockReport(
            product_id=product.id,
            name=product.name,
            available=get_total_stock(product, warehouses),
            status=product_stock_status(product, self._config.low_stock_threshold, warehouses),
            units=stock_units(product, warehouses),
        )

    def plan_allocation(self, requests: Sequence[StockRequest]) -> AllocationResult:
        """Warehouse sources for order lines, drawn from the configured warehouses."""
        return allocate_warehouse_sources(
            self._catalog.get_products(), requests, self._config.warehouses,
        )

    def check_availability(self, requests: Sequence[StockRequest]) -> AvailabilityResult:
        return validate_stock_availability(
            self._catalog.get_products(), requests, self._config.warehouses,
        )

    def batch_history(
        self,
        product_id: int,
        variant_id: str | None = None,
        size_label: str | None = None,
    ) -> list[BatchHistoryEntry]:
        """Oldest-first batch history of one sellable unit, superseded batches flagged."""
        return batch_history(self._unit_stocks(product_id, variant_id, size_label))

    def most_recent_batch(
        self,
        product_id: int,
        variant_id: str | None = None,
        size_label: str | None = None,
    ) -> RecentBatchInfo | None:
        return most_recent_batch(
            self._unit_stocks(product_id, variant_id, size_label),
            legacy_label=self._config.legacy_batch_label,
        )

    def _unit_stocks(
        self,
        product_id: int,
        variant_id: str | None,
        size_label: str | None,
    ) -> tuple[WarehouseStock, ...]:
        product = self._catalog.get_product(product_id)
        if variant_id is not None:
            return require_variant(product, variant_id).warehouse_stock
        if size_label is not None:
            return require_size_option(product, size_label).warehouse_stock
        if not isinstance(product.stock_model, FlatStockModel):
            raise StockModelMismatchError(
                product.id, product.stock_model_kind,
                "a variant_id or size_label is required",
            )
        return sellable_warehouse_stocks(product)
