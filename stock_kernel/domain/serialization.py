"""
Persisted product layout <-> domain objects.

Responsibility:
    Convert between the storefront's camelCase product documents and the
    frozen domain objects in ``stock_kernel.domain``. The documents ARE the
    persisted state, so every field must survive a round trip, including the
    tri-modal stock representation.

Shape detection (load):
    1. non-empty ``variants``    -> VariantStockModel
    2. non-empty ``sizeOptions`` -> LegacySizeStockModel
    3. otherwise                 -> FlatStockModel (``warehouseStock`` may be absent)

    Keys that the detected shape does not use (for example a stale legacy
    ``warehouseStock`` array left beside ``variants`` by an old migration) are
    kept verbatim in ``Product.extras``.

Storefront-written entries:
    Batches without ``kind`` are the storefront's delta notes and load as
    LEGACY; they are written back without ``kind``. Warehouse entries keep
    their unknown keys, an explicit empty ``batches`` list and the key their
    timestamp came from (``receivedAt`` on older records).

Failure modes:
    - MalformedRecordError (a ValidationError) for missing ids, non-integer
      counts or unparseable timestamps. The message carries a JSON-path-like
      location such as ``products[3].variants[0].warehouseStock[1].quantity``.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from stock_kernel.domain.catalog import (
    FlatStockModel,
    LegacySizeOption,
    LegacySizeStockModel,
    Product,
    Variant,
    VariantStockModel,
)
from stock_kernel.domain.clock import ensure_utc
from stock_kernel.domain.stock import Batch, BatchKind, WarehouseStock
from stock_kernel.exceptions import MalformedRecordError

_PRODUCT_KEYS = frozenset({"id", "name", "category", "active", "variants", "sizeOptions", "warehouseStock"})
_VARIANT_KEYS = frozenset({"id", "size", "color", "price", "active", "warehouseStock"})
_SIZE_OPTION_KEYS = frozenset({"label", "price", "warehouseStock"})


# ---------------------------------------------------------------------------
# Scalars
# ---------------------------------------------------------------------------


def _int(value: Any, path: str) -> int:
    if isinstance(value, bool):
        raise MalformedRecordError(path, f"expected an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise MalformedRecordError(path, f"expected an integer, got {value!r}")


def _number(value: Any, path: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedRecordError(path, f"expected a number, got {value!r}")
    return value


def parse_timestamp(value: Any, path: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            raise MalformedRecordError(path, f"invalid timestamp {value!r}") from None
    else:
        raise MalformedRecordError(path, f"invalid timestamp {value!r}")
    return ensure_utc(parsed)


def format_timestamp(value: datetime) -> str:
    """Render a timestamp the way the storefront writes them (UTC, ``Z``)."""
    return ensure_utc(value).isoformat().replace("+00:00", "Z")


def _extras(data: Mapping[str, Any], known: frozenset[str]) -> dict[str, Any]:
    return {k: copy.deepcopy(v) for k, v in data.items() if k not in known}


# ---------------------------------------------------------------------------
# Load
# ---------------------------------------------------------------------------


def batch_from_dict(data: Mapping[str, Any], path: str = "batch") -> Batch:
    try:
        batch_id = data["batchId"]
    except KeyError:
        raise MalformedRecordError(path, "missing batchId") from None
    if "receivedAt" not in data:
        raise MalformedRecordError(path, "missing receivedAt")
    # The storefront writes delta notes without a kind; the engine always sets one.
    kind_value = data.get("kind", BatchKind.LEGACY.value)
    try:
        kind = BatchKind(kind_value)
    except ValueError:
        raise MalformedRecordError(f"{path}.kind", f"unknown batch kind {kind_value!r}") from None
    return Batch(
        batch_id=str(batch_id),
        quantity=_int(data.get("quantity", 0), f"{path}.quantity"),
        reserved=_int(data.get("reserved", 0), f"{path}.reserved"),
        received_at=parse_timestamp(data["receivedAt"], f"{path}.receivedAt"),
        notes=data.get("notes"),
        kind=kind,
    )


def warehouse_stock_from_dict(data: Mapping[str, Any], path: str = "warehouseStock") -> WarehouseStock:
    if "warehouse" not in data:
        raise MalformedRecordError(path, "missing warehouse")
    batches = tuple(
        batch_from_dict(b, f"{path}.batches[{i}]")
        for i, b in enumerate(data.get("batches") or ())
    )
    # Older records stamp legacy stock with receivedAt instead of lastUpdated.
    if data.get("lastUpdated") or not data.get("receivedAt"):
        stamp_key = "lastUpdated"
    else:
        stamp_key = "receivedAt"
    last_updated_raw = data.get(stamp_key)
    consumed = {"warehouse", "quantity", "reserved", "available", stamp_key}
    if batches:
        consumed.add("batches")
    return WarehouseStock(
        warehouse=str(data["warehouse"]),
        quantity=_int(data.get("quantity", 0), f"{path}.quantity"),
        reserved=_int(data.get("reserved", 0), f"{path}.reserved"),
        batches=batches,
        last_updated=(
            parse_timestamp(last_updated_raw, f"{path}.{stamp_key}")
            if last_updated_raw
            else None
        ),
        last_updated_key=stamp_key,
        extras=_extras(data, frozenset(consumed)),
    )


def _warehouse_stocks(items: Iterable[Mapping[str, Any]] | None, path: str) -> tuple[WarehouseStock, ...]:
    return tuple(
        warehouse_stock_from_dict(ws, f"{path}[{i}]")
        for i, ws in enumerate(items or ())
    )


def variant_from_dict(data: Mapping[str, Any], path: str = "variant") -> Variant:
    if "id" not in data:
        raise MalformedRecordError(path, "missing id")
    return Variant(
        id=str(data["id"]),
        size=data.get("size"),
        color=str(data.get("color", "")),
        price=_number(data.get("price", 0), f"{path}.price"),
        active=bool(data.get("active", True)),
        warehouse_stock=_warehouse_stocks(data.get("warehouseStock"), f"{path}.warehouseStock"),
        extras=_extras(data, _VARIANT_KEYS),
    )


def size_option_from_dict(data: Mapping[str, Any], path: str = "sizeOption") -> LegacySizeOption:
    if "label" not in data:
        raise MalformedRecordError(path, "missing label")
    return LegacySizeOption(
        label=str(data["label"]),
        price=_number(data.get("price", 0), f"{path}.price"),
        warehouse_stock=_warehouse_stocks(data.get("warehouseStock"), f"{path}.warehouseStock"),
        extras=_extras(data, _SIZE_OPTION_KEYS),
    )


def product_from_dict(data: Mapping[str, Any], path: str = "product") -> Product:
    """Build a Product from its persisted document."""
    if not isinstance(data, Mapping):
        raise MalformedRecordError(path, "expected an object")
    if "id" not in data:
        raise MalformedRecordError(path, "missing id")
    product_id = _int(data["id"], f"{path}.id")

    variants = data.get("variants") or []
    size_options = data.get("sizeOptions") or []
    used: set[str] = set()

    if variants:
        stock_model = VariantStockModel(
            variants=tuple(
                variant_from_dict(v, f"{path}.variants[{i}]")
                for i, v in enumerate(variants)
            )
        )
        used.add("variants")
    elif size_options:
        stock_model = LegacySizeStockModel(
            size_options=tuple(
                size_option_from_dict(s, f"{path}.sizeOptions[{i}]")
                for i, s in enumerate(size_options)
            )
        )
        used.add("sizeOptions")
    else:
        stock_model = FlatStockModel(
            warehouse_stock=_warehouse_stocks(data.get("warehouseStock"), f"{path}.warehouseStock")
        )
        used.add("warehouseStock")

    known = frozenset({"id", "name", "category", "active"} | used)
    return Product(
        id=product_id,
        name=str(data.get("name", "")),
        category=str(data.get("category", "")),
        active=bool(data.get("active", True)),
        stock_model=stock_model,
        extras=_extras(data, known),
    )


def products_from_dicts(items: Iterable[Mapping[str, Any]]) -> list[Product]:
    return [product_from_dict(p, f"products[{i}]") for i, p in enumerate(items)]


# ---------------------------------------------------------------------------
# Dump
# ---------------------------------------------------------------------------


def batch_to_dict(batch: Batch) -> dict[str, Any]:
    out: dict[str, Any] = {
        "batchId": batch.batch_id,
        "receivedAt": format_timestamp(batch.received_at),
        "quantity": batch.quantity,
        "reserved": batch.reserved,
        "available": batch.available,
    }
    if not batch.is_legacy:
        out["kind"] = batch.kind.value
    if batch.notes is not None:
        out["notes"] = batch.notes
    return out


def warehouse_stock_to_dict(ws: WarehouseStock) -> dict[str, Any]:
    out = copy.deepcopy(dict(ws.extras))
    out.update({
        "warehouse": ws.warehouse,
        "quantity": ws.quantity,
        "reserved": ws.reserved,
    })
    if ws.batches:
        out["batches"] = [batch_to_dict(b) for b in ws.batches]
    if ws.last_updated is not None:
        out[ws.last_updated_key] = format_timestamp(ws.last_updated)
    return out


def variant_to_dict(variant: Variant) -> dict[str, Any]:
    out = copy.deepcopy(dict(variant.extras))
    out.update({
        "id": variant.id,
        "size": variant.size,
        "color": variant.color,
        "price": variant.price,
        "active": variant.active,
        "warehouseStock": [warehouse_stock_to_dict(ws) for ws in variant.warehouse_stock],
    })
    return out


def size_option_to_dict(option: LegacySizeOption) -> dict[str, Any]:
    out = copy.deepcopy(dict(option.extras))
    out.update({
        "label": option.label,
        "price": option.price,
        "warehouseStock": [warehouse_stock_to_dict(ws) for ws in option.warehouse_stock],
    })
    return out


def product_to_dict(product: Product) -> dict[str, Any]:
    """Render a Product as its persisted document."""
    out = copy.deepcopy(dict(product.extras))
    out.update({
        "id": product.id,
        "name": product.name,
        "category": product.category,
        "active": product.active,
    })
    model = product.stock_model
    if isinstance(model, VariantStockModel):
        out["variants"] = [variant_to_dict(v) for v in model.variants]
    elif isinstance(model, LegacySizeStockModel):
        out["sizeOptions"] = [size_option_to_dict(s) for s in model.size_options]
    else:
        out["warehouseStock"] = [warehouse_stock_to_dict(ws) for ws in model.warehouse_stock]
    return out
