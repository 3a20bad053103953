"""
Stateful orchestration over the stock engines: catalog persistence, the
stock mutation API, audit pairing for admin edits and the inventory
read views.
"""

from stock_services.audit import (
    INVENTORY_UPDATED,
    Actor,
    AuditEntry,
    AuditLogSink,
    AuditTarget,
    FieldChange,
    InMemoryAuditLog,
)
from stock_services.batch_ids import BatchIdSequence
from stock_services.catalog import (
    InMemoryProductCatalog,
    ProductCatalog,
    SqlProductCatalog,
)
from stock_services.inventory_admin_service import InventoryAdminService
from stock_services.inventory_report_service import (
    InventoryReportService,
    ProductStockReport,
)
from stock_services.stock_mutation_service import StockChange, StockMutationService

__all__ = [
    "INVENTORY_UPDATED",
    "Actor",
    "AuditEntry",
    "AuditLogSink",
    "AuditTarget",
    "BatchIdSequence",
    "FieldChange",
    "InMemoryAuditLog",
    "InMemoryProductCatalog",
    "InventoryAdminService",
    "InventoryReportService",
    "ProductCatalog",
    "ProductStockReport",
    "SqlProductCatalog",
    "StockChange",
    "StockMutationService",
]
