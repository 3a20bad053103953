"""
Warehouse stock aggregation.

Responsibility:
    Compute quantity, reserved and available-to-sell for a single
    (sellable unit, warehouse) pair, and roll those up across the
    warehouses a unit is stocked in.

Architecture position:
    Engines -- pure calculation, zero I/O. Reads ``stock_kernel.domain``
    value objects, never mutates them.

Ledger model:
    LEGACY batches are the storefront's "Added/Removed N units" notes. They
    are history only and never count toward totals. An entry whose batches
    are all LEGACY (or that has none) is in flat mode: ``quantity`` and
    ``reserved`` are read directly.

    Every other batch is a ledger batch. A CORRECTION batch is a checkpoint
    holding full totals. The live batches are the ledger batches from the
    latest checkpoint (inclusive) onward; with no checkpoint every ledger
    batch is live. In ledger mode the flat fields must equal the live sums.

Invariants enforced:
    - NON_NEGATIVE_AVAILABILITY: ``available()`` clamps at zero and logs a
      warning when stored totals are inconsistent.
    - RESERVED_WITHIN_QUANTITY: a live batch with ``reserved > quantity``
      or a negative count raises BatchInvariantViolation. Superseded
      batches are history and are not re-validated.
    - FLAT_MIRRORS_LEDGER: flat totals that disagree with the live batches
      raise LedgerMirrorMismatchError. Neither side is trusted over the
      other.

Failure modes:
    - BatchInvariantViolation / LedgerMirrorMismatchError (both
      InvariantViolation) from any total. Logged at ERROR before raising.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable
from dataclasses import dataclass

from stock_kernel.domain.stock import Batch, Warehouse, WarehouseStock
from stock_kernel.exceptions import BatchInvariantViolation, LedgerMirrorMismatchError
from stock_kernel.logging_config import get_logger

logger = get_logger("engines.aggregation")


@dataclass(frozen=True, slots=True)
class WarehouseTotals:
    """Aggregated counts for one warehouse entry."""

    warehouse: str
    quantity: int
    reserved: int
    batch_count: int = 0

    @property
    def available(self) -> int:
        return max(0, self.quantity - self.reserved)


# ---------------------------------------------------------------------------
# Ledger views
# ---------------------------------------------------------------------------


def latest_checkpoint_index(ws: WarehouseStock) -> int | None:
    """Index of the last CORRECTION batch, or None."""
    for index in range(len(ws.batches) - 1, -1, -1):
        if ws.batches[index].is_checkpoint:
            return index
    return None


def live_batch_indices(ws: WarehouseStock) -> list[int]:
    """Positions of the batches that count toward the totals."""
    start = latest_checkpoint_index(ws) or 0
    return [i for i in range(start, len(ws.batches)) if not ws.batches[i].is_legacy]


def live_batches(ws: WarehouseStock) -> tuple[Batch, ...]:
    return tuple(ws.batches[i] for i in live_batch_indices(ws))


def superseded_batches(ws: WarehouseStock) -> tuple[Batch, ...]:
    """Ledger batches recorded before the latest checkpoint."""
    start = latest_checkpoint_index(ws)
    if start is None:
        return ()
    return tuple(b for b in ws.batches[:start] if not b.is_legacy)


def legacy_batches(ws: WarehouseStock) -> tuple[Batch, ...]:
    return tuple(b for b in ws.batches if b.is_legacy)


def check_batch_invariants(ws: WarehouseStock) -> None:
    """Raise unless every live batch is sane and the flat fields mirror them."""
    if not ws.has_ledger_batches:
        return
    live = live_batches(ws)
    for batch in live:
        if batch.quantity < 0 or batch.reserved < 0 or batch.reserved > batch.quantity:
            logger.error("batch_invariant_violated", extra={
                "warehouse": ws.warehouse,
                "batch_id": batch.batch_id,
                "quantity": batch.quantity,
                "reserved": batch.reserved,
            })
            raise BatchInvariantViolation(
                ws.warehouse, batch.batch_id, batch.quantity, batch.reserved,
            )

    ledger_quantity = sum(b.quantity for b in live)
    ledger_reserved = sum(b.reserved for b in live)
    if (ws.quantity, ws.reserved) != (ledger_quantity, ledger_reserved):
        logger.error("ledger_mirror_mismatch", extra={
            "warehouse": ws.warehouse,
            "flat_quantity": ws.quantity,
            "flat_reserved": ws.reserved,
            "ledger_quantity": ledger_quantity,
            "ledger_reserved": ledger_reserved,
        })
        raise LedgerMirrorMismatchError(
            ws.warehouse, ws.quantity, ws.reserved, ledger_quantity, ledger_reserved,
        )


# ---------------------------------------------------------------------------
# Totals
# ---------------------------------------------------------------------------


def total_quantity(ws: WarehouseStock) -> int:
    check_batch_invariants(ws)
    return ws.quantity


def total_reserved(ws: WarehouseStock) -> int:
    check_batch_invariants(ws)
    return ws.reserved


def available(ws: WarehouseStock) -> int:
    """Sellable units at this warehouse, never negative."""
    quantity = total_quantity(ws)
    reserved = total_reserved(ws)
    if quantity - reserved < 0:
        logger.warning("warehouse_stock_inconsistent", extra={
            "warehouse": ws.warehouse,
            "quantity": quantity,
            "reserved": reserved,
        })
        return 0
    return quantity - reserved


def summarize_warehouse(ws: WarehouseStock) -> WarehouseTotals:
    return WarehouseTotals(
        warehouse=ws.warehouse,
        quantity=total_quantity(ws),
        reserved=total_reserved(ws),
        batch_count=len(ws.batches),
    )


# ---------------------------------------------------------------------------
# Across warehouses
# ---------------------------------------------------------------------------


def known_warehouse_stocks(
    stocks: Iterable[WarehouseStock],
    warehouses: Collection[str] | None = None,
) -> list[WarehouseStock]:
    """
    Entries for the warehouses being counted; other names are skipped.

    ``warehouses`` defaults to every physical warehouse.
    """
    if warehouses is None:
        return [ws for ws in stocks if Warehouse.is_known(ws.warehouse)]
    return [ws for ws in stocks if ws.warehouse in warehouses]


def total_available(
    stocks: Iterable[WarehouseStock],
    warehouses: Collection[str] | None = None,
) -> int:
    return sum(available(ws) for ws in known_warehouse_stocks(stocks, warehouses))


def is_stock_available(
    stocks: Iterable[WarehouseStock],
    requested: int,
    warehouses: Collection[str] | None = None,
) -> bool:
    return total_available(stocks, warehouses) >= requested


def rank_warehouses(
    stocks: Iterable[WarehouseStock],
    warehouses: Collection[str] | None = None,
) -> list[tuple[WarehouseStock, int]]:
    """
    Counted warehouses with stock, most available first.

    Ties keep their stored order (``sorted`` is stable).
    """
    candidates = [(ws, available(ws)) for ws in known_warehouse_stocks(stocks, warehouses)]
    candidates = [(ws, qty) for ws, qty in candidates if qty > 0]
    return sorted(candidates, key=lambda pair: pair[1], reverse=True)


def get_best_warehouse(
    stocks: Iterable[WarehouseStock],
    warehouses: Collection[str] | None = None,
) -> WarehouseStock | None:
    """The warehouse entry with the most units available, or None."""
    ranked = rank_warehouses(stocks, warehouses)
    return ranked[0][0] if ranked else None
