"""
Configuration loader (``stock_config.loader``).

Responsibility
--------------
Load a YAML file and parse it into a frozen ``InventoryConfig``. Services
never call this module; the runtime entry point is
``stock_config.get_active_config()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Wrong value types or out-of-range values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from stock_config.schema import InventoryConfig


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 of the parsed document."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ValueError(f"'{name}' must be a mapping")
    return value


def parse_config(data: dict[str, Any]) -> InventoryConfig:
    """Build an InventoryConfig; absent keys take the schema defaults."""
    defaults = InventoryConfig()
    inventory = _section(data, "inventory")
    database = _section(data, "database")
    logging_section = _section(data, "logging")

    threshold = inventory.get("low_stock_threshold", defaults.low_stock_threshold)
    if isinstance(threshold, bool) or not isinstance(threshold, int):
        raise ValueError(f"low_stock_threshold must be an integer, got {threshold!r}")

    warehouses = inventory.get("warehouses", list(defaults.warehouses))
    if not isinstance(warehouses, list):
        raise ValueError(f"warehouses must be a list, got {warehouses!r}")

    return InventoryConfig(
        config_id=str(data.get("config_id", defaults.config_id)),
        version=int(data.get("version", defaults.version)),
        low_stock_threshold=threshold,
        warehouses=tuple(str(w) for w in warehouses),
        batch_id_prefix=str(inventory.get("batch_id_prefix", defaults.batch_id_prefix)),
        legacy_batch_label=str(inventory.get("legacy_batch_label", defaults.legacy_batch_label)),
        database_url=str(database.get("url", defaults.database_url)),
        database_echo=bool(database.get("echo", defaults.database_echo)),
        log_level=str(logging_section.get("level", defaults.log_level)),
        checksum=compute_checksum(data),
    )
