#!/usr/bin/env python3
"""
Print the inventory dashboard from the product catalog.

Reads settings from the active config (``STOCK_CONFIG_PATH`` or the packaged
default), connects to ``database.url`` and prints the per-warehouse on-hand
summary followed by one line per sellable unit. With ``--load`` the product
documents in a JSON file are added to the catalog first, which is how an
in-memory SQLite database gets any data at all.

Usage:
    python3 scripts/view_inventory.py [--config PATH] [--load products.json]

Examples:
    # Summary of the configured database
    python3 scripts/view_inventory.py

    # One-off look at an exported catalog
    python3 scripts/view_inventory.py --load export/products.json
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from stock_config import get_active_config
from stock_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
from stock_kernel.domain.serialization import products_from_dicts
from stock_kernel.logging_config import configure_logging
from stock_services.catalog import SqlProductCatalog
from stock_services.inventory_report_service import InventoryReportService

W = 72


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Print warehouse stock totals and per-unit availability.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Config YAML (default: $STOCK_CONFIG_PATH or the packaged default).",
    )
    parser.add_argument(
        "--load",
        type=Path,
        default=None,
        help="JSON file holding a list of product documents to add first.",
    )
    return parser.parse_args()


def main() -> int:
    args = _parse_args()
    config = get_active_config(args.config)
    configure_logging(level=config.log_level_number)

    engine = init_engine_from_url(config.database_url, echo=config.database_echo)
    create_tables(engine)
    catalog = SqlProductCatalog(get_session_factory())

    if args.load is not None:
        with open(args.load) as f:
            documents = json.load(f)
        for product in products_from_dicts(documents):
            catalog.add_product(product)

    reports = InventoryReportService(catalog, config)
    summary = reports.summary()

    print("=" * W)
    print("  INVENTORY SUMMARY".center(W))
    print("=" * W)
    for warehouse, on_hand in summary.on_hand_by_warehouse.items():
        print(f"  {warehouse:<20}{on_hand:>10} on hand")
    print(f"  {'Total':<20}{summary.total_on_hand:>10} on hand")
    print(f"  Low stock: {summary.low_stock_products}   Out of stock: {summary.out_of_stock_products}")
    print()

    for product in catalog.get_products():
        report = reports.product_report(product.id)
        print(f"  [{report.status.value:<12}] #{report.product_id} {report.name} ({report.available} available)")
        for unit in report.units:
            per_warehouse = ", ".join(f"{w.warehouse} {w.available}" for w in unit.warehouses)
            flag = "" if unit.active else " (inactive)"
            print(f"      {unit.label}{flag}: {unit.available}  [{per_warehouse}]")
    print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
