"""
Inventory configuration schema.

Frozen dataclasses produced by ``stock_config.loader``. Validation runs in
``__post_init__`` so an invalid value can never reach a service.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from stock_kernel.domain.stock import Warehouse

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


@dataclass(frozen=True)
class InventoryConfig:
    """Runtime settings for the allocation engine and its services."""

    config_id: str = "default"
    version: int = 1
    low_stock_threshold: int = 10
    warehouses: tuple[str, ...] = ("Lorenzo", "Oroquieta")
    batch_id_prefix: str = "BATCH"
    legacy_batch_label: str = "Legacy"
    database_url: str = "sqlite:///:memory:"
    database_echo: bool = False
    log_level: str = "INFO"
    checksum: str = ""

    def __post_init__(self) -> None:
        if self.low_stock_threshold < 0:
            raise ValueError(
                f"low_stock_threshold must be >= 0, got {self.low_stock_threshold}"
            )
        if not self.warehouses:
            raise ValueError("at least one warehouse must be configured")
        unknown = [w for w in self.warehouses if not Warehouse.is_known(w)]
        if unknown:
            raise ValueError(
                f"Unknown warehouses {unknown}; expected a subset of {list(Warehouse.names())}"
            )
        if len(set(self.warehouses)) != len(self.warehouses):
            raise ValueError(f"Duplicate warehouses in {list(self.warehouses)}")
        if not self.batch_id_prefix or not self.batch_id_prefix.isalnum():
            raise ValueError(
                f"batch_id_prefix must be a non-empty alphanumeric string, got {self.batch_id_prefix!r}"
            )
        if not self.legacy_batch_label:
            raise ValueError("legacy_batch_label must not be empty")
        if not self.database_url:
            raise ValueError("database_url must not be empty")
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"Unknown log_level {self.log_level!r}")

    @property
    def log_level_number(self) -> int:
        return logging.getLevelName(self.log_level.upper())
