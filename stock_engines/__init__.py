"""
Pure stock calculation engines.

Every module here is a pure function of its inputs: no database, no clock,
no configuration lookups. Services feed them domain objects and persist
whatever they return.
"""

from stock_engines.aggregation import (
    WarehouseTotals,
    available,
    check_batch_invariants,
    get_best_warehouse,
    is_stock_available,
    legacy_batches,
    live_batches,
    summarize_warehouse,
    superseded_batches,
    total_available,
    total_quantity,
    total_reserved,
)
from stock_engines.allocation import (
    AllocationResult,
    AvailabilityResult,
    StockAllocation,
    StockRequest,
    allocate_warehouse_sources,
    validate_stock_availability,
)
from stock_engines.fifo import (
    BatchHistoryEntry,
    RecentBatchInfo,
    batch_history,
    list_batches_fifo,
    most_recent_batch,
)
from stock_engines.reporting import (
    InventorySummary,
    StockStatus,
    inventory_summary,
    product_stock_status,
    stock_status,
)
from stock_engines.resolver import (
    StockUnit,
    find_variant,
    get_size_option_stock,
    get_total_stock,
    get_variant_by_id,
    get_variant_stock,
    get_variant_warehouse_stock,
    is_product_in_stock,
    product_colors,
    product_sizes,
    sellable_warehouse_stocks,
    stock_units,
)

__all__ = [
    "AllocationResult",
    "AvailabilityResult",
    "BatchHistoryEntry",
    "InventorySummary",
    "RecentBatchInfo",
    "StockAllocation",
    "StockRequest",
    "StockStatus",
    "StockUnit",
    "WarehouseTotals",
    "allocate_warehouse_sources",
    "available",
    "batch_history",
    "check_batch_invariants",
    "find_variant",
    "get_best_warehouse",
    "get_size_option_stock",
    "get_total_stock",
    "get_variant_by_id",
    "get_variant_stock",
    "get_variant_warehouse_stock",
    "inventory_summary",
    "is_product_in_stock",
    "is_stock_available",
    "legacy_batches",
    "list_batches_fifo",
    "live_batches",
    "most_recent_batch",
    "product_colors",
    "product_sizes",
    "product_stock_status",
    "sellable_warehouse_stocks",
    "stock_status",
    "stock_units",
    "summarize_warehouse",
    "superseded_batches",
    "total_available",
    "total_quantity",
    "total_reserved",
    "validate_stock_availability",
]
