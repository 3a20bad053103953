"""
Warehouse stock value objects.

Responsibility:
    The leaf nouns of the allocation engine: the warehouses, a received lot
    (``Batch``) and the per-warehouse aggregate (``WarehouseStock``).

Architecture position:
    Kernel > Domain -- pure data, zero I/O.

Invariants:
    These objects do NOT validate ``reserved <= quantity`` on construction.
    Stored data must be loadable even when inconsistent so that the
    aggregation engine can report the violation instead of the loader
    hiding it. Mutations validate before they build new values.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class Warehouse(str, Enum):
    """The two physical warehouses stock is held in."""

    LORENZO = "Lorenzo"
    OROQUIETA = "Oroquieta"

    @classmethod
    def is_known(cls, name: str) -> bool:
        return name in _KNOWN_WAREHOUSE_NAMES

    @classmethod
    def names(cls) -> tuple[str, ...]:
        return tuple(w.value for w in cls)


_KNOWN_WAREHOUSE_NAMES = frozenset(w.value for w in Warehouse)


class BatchKind(str, Enum):
    """Why a batch was appended to the ledger."""

    RECEIPT = "receipt"          # initial stock, restock, customer return
    CORRECTION = "correction"    # admin edit; checkpoint of full totals
    OPENING = "opening"          # flat stock carried over when history starts
    LEGACY = "legacy"            # storefront delta note; history only, never counted


@dataclass(frozen=True, slots=True)
class Batch:
    """
    A received lot of units at one warehouse.

    ``quantity`` never changes once a batch is superseded. While a batch is
    live its ``reserved`` count grows as orders reserve units, and sold units
    are removed from both counts.
    """

    batch_id: str
    quantity: int
    reserved: int
    received_at: datetime
    notes: str | None = None
    kind: BatchKind = BatchKind.RECEIPT

    @property
    def available(self) -> int:
        return self.quantity - self.reserved

    @property
    def is_checkpoint(self) -> bool:
        return self.kind is BatchKind.CORRECTION

    @property
    def is_legacy(self) -> bool:
        return self.kind is BatchKind.LEGACY


@dataclass(frozen=True, slots=True)
class WarehouseStock:
    """
    Stock of one sellable unit at one warehouse.

    ``warehouse`` is a plain string: names outside ``Warehouse`` survive a
    load/save round trip and are ignored by aggregation.

    Without ledger batches (none at all, or only LEGACY delta notes written
    by the storefront) the entry is in flat mode and ``quantity`` /
    ``reserved`` are authoritative. Otherwise they must equal the live batch
    totals.

    ``extras`` keeps persisted keys the engine does not interpret, and
    ``last_updated_key`` the key the timestamp was stored under (older
    records use ``receivedAt``).
    """

    warehouse: str
    quantity: int = 0
    reserved: int = 0
    batches: tuple[Batch, ...] = field(default_factory=tuple)
    last_updated: datetime | None = None
    last_updated_key: str = "lastUpdated"
    extras: Mapping[str, Any] = field(default_factory=dict)

    @property
    def has_ledger_batches(self) -> bool:
        """True once the engine tracks this entry batch by batch."""
        return any(not b.is_legacy for b in self.batches)

    @property
    def is_known_warehouse(self) -> bool:
        return Warehouse.is_known(self.warehouse)
