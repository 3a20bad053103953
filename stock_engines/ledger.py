"""
Stock ledger mutations.

Responsibility:
    Pure transitions of a single ``WarehouseStock``. Each function validates
    its preconditions and returns a NEW aggregate; the input is never
    modified and no stored batch is rewritten once superseded.

    * ``restock``  -- append a RECEIPT batch (new lot, customer return)
    * ``correct``  -- append a CORRECTION checkpoint carrying full totals
    * ``reserve``  -- hold units for an order, oldest live batch first
    * ``release``  -- free held units, newest reservation first
    * ``fulfil``   -- ship held units: quantity and reserved drop together

Architecture position:
    Engines -- pure calculation, zero I/O. Batch ids and timestamps are
    supplied by the caller (the mutation service owns the id sequence and
    the clock).

Invariants enforced:
    - RESERVED_WITHIN_QUANTITY: every successful transition leaves
      ``0 <= reserved <= quantity``; ``validate_totals`` guards corrections.
    - APPEND_ONLY_LEDGER: only the live batches' ``reserved``/``quantity``
      move; new history is appended, never inserted.
    - FLAT_MIRRORS_LEDGER: once an entry carries ledger batches, every
      transition writes flat ``quantity``/``reserved`` equal to the live
      batches. An entry that does not mirror is refused, not rewritten.
    - LEGACY delta notes are kept as history. Flat-mode entries (including
      ones that only carry such notes) move their flat fields; the first
      receipt carries those totals into an OPENING batch.
    - Timestamps are stored as UTC; naive values are taken as UTC.

Failure modes:
    - NegativeQuantityError / ReservedExceedsQuantityError for bad totals.
    - ValidationError for a non-positive movement quantity.
    - InsufficientStockError when reserving more than is available.
    - InsufficientReservationError when releasing or fulfilling more than
      is reserved. Never clamped.
    - InvariantViolation when the stored aggregate is already inconsistent,
      including flat totals that disagree with the live batches.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from datetime import datetime

from stock_engines.aggregation import (
    available,
    check_batch_invariants,
    live_batch_indices,
    live_batches,
    total_quantity,
    total_reserved,
)
from stock_kernel.domain.clock import ensure_utc
from stock_kernel.domain.stock import Batch, BatchKind, WarehouseStock
from stock_kernel.exceptions import (
    InsufficientReservationError,
    InsufficientStockError,
    InvariantViolation,
    NegativeQuantityError,
    ReservedExceedsQuantityError,
    ValidationError,
)
from stock_kernel.logging_config import get_logger

logger = get_logger("engines.ledger")

BatchIdFactory = Callable[[], str]


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_totals(quantity: int, reserved: int) -> None:
    """Reject totals an admin correction may not write."""
    if quantity < 0:
        raise NegativeQuantityError("quantity", quantity)
    if reserved < 0:
        raise NegativeQuantityError("reserved", reserved)
    if reserved > quantity:
        raise ReservedExceedsQuantityError(quantity, reserved)


def _require_positive(quantity: int, action: str) -> None:
    if quantity < 0:
        raise NegativeQuantityError("quantity", quantity)
    if quantity == 0:
        raise ValidationError(f"{action} quantity must be positive")


def assert_consistent(ws: WarehouseStock) -> None:
    """Raise InvariantViolation unless ``0 <= reserved <= quantity`` holds."""
    check_batch_invariants(ws)
    quantity = total_quantity(ws)
    reserved = total_reserved(ws)
    if quantity < 0 or reserved < 0 or reserved > quantity:
        logger.error("warehouse_invariant_violated", extra={
            "warehouse": ws.warehouse,
            "quantity": quantity,
            "reserved": reserved,
        })
        raise InvariantViolation(
            f"Warehouse stock at {ws.warehouse} is inconsistent: "
            f"quantity={quantity}, reserved={reserved}"
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _with_batches(ws: WarehouseStock, batches: tuple[Batch, ...], at: datetime) -> WarehouseStock:
    """New aggregate whose flat totals mirror the live batches."""
    updated = replace(ws, batches=batches, last_updated=ensure_utc(at))
    live = live_batches(updated)
    return replace(
        updated,
        quantity=sum(b.quantity for b in live),
        reserved=sum(b.reserved for b in live),
    )


def _opening_batch(ws: WarehouseStock, new_batch_id: BatchIdFactory, at: datetime) -> tuple[Batch, ...]:
    """Carry flat stock into the ledger the first time it gains a ledger batch."""
    assert_consistent(ws)
    if ws.has_ledger_batches or (ws.quantity == 0 and ws.reserved == 0):
        return ws.batches
    return ws.batches + (
        Batch(
            batch_id=new_batch_id(),
            quantity=ws.quantity,
            reserved=ws.reserved,
            received_at=ensure_utc(ws.last_updated or at),
            notes="Opening balance carried over from flat stock",
            kind=BatchKind.OPENING,
        ),
    )


def _live_fifo_indices(ws: WarehouseStock) -> list[int]:
    """Indices of live batches, oldest receipt first (stable on ties)."""
    return sorted(live_batch_indices(ws), key=lambda i: ensure_utc(ws.batches[i].received_at))


# ---------------------------------------------------------------------------
# Appending transitions
# ---------------------------------------------------------------------------


def restock(
    ws: WarehouseStock,
    quantity: int,
    *,
    new_batch_id: BatchIdFactory,
    received_at: datetime,
    at: datetime | None = None,
    notes: str | None = None,
) -> WarehouseStock:
    """Append a received lot of ``quantity`` units."""
    _require_positive(quantity, "Restock")
    received_at = ensure_utc(received_at)
    history = _opening_batch(ws, new_batch_id, received_at)
    batch = Batch(
        batch_id=new_batch_id(),
        quantity=quantity,
        reserved=0,
        received_at=received_at,
        notes=notes,
        kind=BatchKind.RECEIPT,
    )
    result = _with_batches(ws, history + (batch,), at or received_at)
    logger.info("warehouse_stock_restocked", extra={
        "warehouse": ws.warehouse,
        "batch_id": batch.batch_id,
        "quantity": quantity,
        "new_total": result.quantity,
    })
    return result


def correct(
    ws: WarehouseStock,
    new_quantity: int,
    new_reserved: int,
    *,
    batch_id: str,
    at: datetime,
    notes: str | None = None,
) -> WarehouseStock:
    """
    Set the aggregate to the given totals by appending a checkpoint.

    Prior batches are superseded, not edited. A correction to the current
    totals still appends a checkpoint so the edit shows in FIFO review.
    """
    validate_totals(new_quantity, new_reserved)
    at = ensure_utc(at)
    batch = Batch(
        batch_id=batch_id,
        quantity=new_quantity,
        reserved=new_reserved,
        received_at=at,
        notes=notes or f"Stock corrected to {new_quantity} units ({new_reserved} reserved)",
        kind=BatchKind.CORRECTION,
    )
    result = _with_batches(ws, ws.batches + (batch,), at)
    logger.info("warehouse_stock_corrected", extra={
        "warehouse": ws.warehouse,
        "batch_id": batch_id,
        "old_quantity": ws.quantity,
        "old_reserved": ws.reserved,
        "new_quantity": new_quantity,
        "new_reserved": new_reserved,
    })
    return result


# ---------------------------------------------------------------------------
# Reservation transitions
# ---------------------------------------------------------------------------


def reserve(
    ws: WarehouseStock,
    quantity: int,
    *,
    at: datetime,
    target: str | None = None,
) -> WarehouseStock:
    """Hold ``quantity`` units, drawing from the oldest live batches first."""
    _require_positive(quantity, "Reserve")
    assert_consistent(ws)
    sellable = available(ws)
    if quantity > sellable:
        raise InsufficientStockError(target or ws.warehouse, quantity, sellable)

    if not ws.has_ledger_batches:
        return replace(ws, reserved=ws.reserved + quantity, last_updated=ensure_utc(at))

    batches = list(ws.batches)
    remaining = quantity
    for index in _live_fifo_indices(ws):
        if remaining == 0:
            break
        batch = batches[index]
        take = min(remaining, batch.available)
        if take > 0:
            batches[index] = replace(batch, reserved=batch.reserved + take)
            remaining -= take
    return _with_batches(ws, tuple(batches), at)


def release(
    ws: WarehouseStock,
    quantity: int,
    *,
    at: datetime,
    target: str | None = None,
) -> WarehouseStock:
    """Free ``quantity`` held units, most recently received batches first."""
    _require_positive(quantity, "Release")
    assert_consistent(ws)
    held = total_reserved(ws)
    if quantity > held:
        raise InsufficientReservationError(target or ws.warehouse, quantity, held)

    if not ws.has_ledger_batches:
        return replace(ws, reserved=ws.reserved - quantity, last_updated=ensure_utc(at))

    batches = list(ws.batches)
    remaining = quantity
    for index in reversed(_live_fifo_indices(ws)):
        if remaining == 0:
            break
        batch = batches[index]
        take = min(remaining, batch.reserved)
        if take > 0:
            batches[index] = replace(batch, reserved=batch.reserved - take)
            remaining -= take
    return _with_batches(ws, tuple(batches), at)


def fulfil(
    ws: WarehouseStock,
    quantity: int,
    *,
    at: datetime,
    target: str | None = None,
) -> WarehouseStock:
    """Remove ``quantity`` sold units that were previously reserved."""
    _require_positive(quantity, "Fulfil")
    assert_consistent(ws)
    held = total_reserved(ws)
    if quantity > held:
        raise InsufficientReservationError(target or ws.warehouse, quantity, held)

    if not ws.has_ledger_batches:
        return replace(
            ws,
            quantity=ws.quantity - quantity,
            reserved=ws.reserved - quantity,
            last_updated=ensure_utc(at),
        )

    batches = list(ws.batches)
    remaining = quantity
    for index in _live_fifo_indices(ws):
        if remaining == 0:
            break
        batch = batches[index]
        take = min(remaining, batch.reserved)
        if take > 0:
            batches[index] = replace(
                batch,
                quantity=batch.quantity - take,
                reserved=batch.reserved - take,
            )
            remaining -= take
    return _with_batches(ws, tuple(batches), at)
