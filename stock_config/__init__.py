"""
stock_config -- single public entrypoint for inventory configuration.

Responsibility:
    ``get_active_config()`` is the only way services obtain settings. No
    other component reads configuration files or environment variables.

Architecture position:
    Configuration -- sits above ``stock_kernel`` and below
    ``stock_services``. The kernel MUST NEVER import from ``stock_config``.

Failure modes:
    - ``FileNotFoundError`` -- the file named by ``STOCK_CONFIG_PATH`` (or
      the explicit ``path``) does not exist.
    - ``ValueError`` -- schema validation failed.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from stock_config.loader import load_yaml_file, parse_config
from stock_config.schema import InventoryConfig

_logger = logging.getLogger("stock_kernel.config")

CONFIG_PATH_ENV = "STOCK_CONFIG_PATH"
DEFAULT_CONFIG_FILE = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(path: Path | str | None = None) -> InventoryConfig:
    """Load, validate and return the active inventory configuration.

    Resolution order: explicit ``path``, then ``$STOCK_CONFIG_PATH``, then
    the packaged ``sets/default.yaml``. Not cached; callers hold the
    returned object.
    """
    source = Path(path or os.environ.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_FILE)
    config = parse_config(load_yaml_file(source))

    _logger.info(
        "STOCK_CONFIG_TRACE",
        extra={
            "trace_type": "STOCK_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source": str(source),
        },
    )
    return config


__all__ = [
    "CONFIG_PATH_ENV",
    "DEFAULT_CONFIG_FILE",
    "InventoryConfig",
    "get_active_config",
]
