"""
FIFO batch reporter.

Read-only ordering of every batch held for one sellable unit across its
warehouses, oldest receipt first, for "sell oldest stock first" review.
The sort is stable: batches received at the same instant keep the order
they were recorded in (warehouse order, then ledger order).

A batch is flagged ``superseded`` when it no longer counts toward the
totals: it predates the latest correction, or it is a storefront delta note.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from stock_engines.aggregation import live_batch_indices
from stock_kernel.domain.stock import Batch, WarehouseStock

LEGACY_BATCH_ID = "Legacy"


@dataclass(frozen=True, slots=True)
class BatchHistoryEntry:
    warehouse: str
    batch: Batch
    superseded: bool


@dataclass(frozen=True, slots=True)
class RecentBatchInfo:
    """What a "last updated" display shows for a unit."""

    timestamp: datetime
    batch_id: str
    warehouse: str


def batch_history(stocks: Iterable[WarehouseStock]) -> list[BatchHistoryEntry]:
    """All batches tagged with their warehouse, oldest first."""
    entries: list[BatchHistoryEntry] = []
    for ws in stocks:
        live = set(live_batch_indices(ws))
        for index, batch in enumerate(ws.batches):
            entries.append(BatchHistoryEntry(
                warehouse=ws.warehouse,
                batch=batch,
                superseded=index not in live,
            ))
    return sorted(entries, key=lambda e: e.batch.received_at)


def list_batches_fifo(stocks: Iterable[WarehouseStock]) -> list[Batch]:
    return [entry.batch for entry in batch_history(stocks)]


def most_recent_batch(
    stocks: Iterable[WarehouseStock],
    legacy_label: str = LEGACY_BATCH_ID,
) -> RecentBatchInfo | None:
    """
    The latest receipt across all warehouses.

    A warehouse without discrete batches contributes its ``last_updated``
    stamp under ``legacy_label``. On equal timestamps the first one seen
    wins. Returns None when nothing carries a timestamp.
    """
    latest: RecentBatchInfo | None = None
    for ws in stocks:
        if ws.batches:
            candidates = [
                RecentBatchInfo(b.received_at, b.batch_id, ws.warehouse) for b in ws.batches
            ]
        elif ws.last_updated is not None:
            candidates = [RecentBatchInfo(ws.last_updated, legacy_label, ws.warehouse)]
        else:
            candidates = []
        for candidate in candidates:
            if latest is None or candidate.timestamp > latest.timestamp:
                latest = candidate
    return latest
