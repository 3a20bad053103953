"""
Pure domain layer.

This module contains pure data objects with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O

All domain objects are immutable.
"""

from stock_kernel.domain.catalog import (
    FlatStockModel,
    LegacySizeOption,
    LegacySizeStockModel,
    Product,
    StockModel,
    Variant,
    VariantStockModel,
    generate_variant_id,
)
from stock_kernel.domain.clock import Clock, DeterministicClock, SystemClock, ensure_utc
from stock_kernel.domain.stock import Batch, BatchKind, Warehouse, WarehouseStock

__all__ = [
    "Batch",
    "BatchKind",
    "Clock",
    "DeterministicClock",
    "FlatStockModel",
    "LegacySizeOption",
    "LegacySizeStockModel",
    "Product",
    "StockModel",
    "SystemClock",
    "Variant",
    "VariantStockModel",
    "Warehouse",
    "WarehouseStock",
    "ensure_utc",
    "generate_variant_id",
]
