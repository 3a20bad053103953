"""
stock_services.inventory_admin_service -- Admin inventory edits with audit pairing.

Responsibility:
    The production caller of the stock mutation API for the admin console.
    Every successful stock edit or restock is followed by exactly one
    ``inventory_updated`` audit entry describing who changed what.

Architecture position:
    Services -- composes StockMutationService with an AuditLogSink.

Invariants enforced:
    - One mutation, one audit entry. A mutation that raises writes no
      entry.

Failure modes:
    - Every StockMutationService error propagates unchanged.
    - An error from the audit sink propagates after the stock change has
      been saved; it is logged at ERROR with the batch id so the missing
      entry can be reconstructed.
"""

from __future__ import annotations

from datetime import datetime

from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.logging_config import LogContext, get_logger
from stock_services.audit import (
    INVENTORY_UPDATED,
    Actor,
    AuditEntry,
    AuditLogSink,
    AuditTarget,
    FieldChange,
)
from stock_services.stock_mutation_service import StockChange, StockMutationService

logger = get_logger("services.inventory_admin")


class InventoryAdminService:
    """Admin-facing stock edits, each paired with an audit entry."""

    def __init__(
        self,
        mutations: StockMutationService,
        audit_log: AuditLogSink,
        clock: Clock | None = None,
    ):
        self._mutations = mutations
        self._audit_log = audit_log
        self._clock = clock or SystemClock()

    def update_stock(
        self,
        actor: Actor,
        product_id: int,
        warehouse: str,
        quantity: int,
        reserved: int,
        *,
        variant_id: str | None = None,
        size_label: str | None = None,
    ) -> StockChange:
        """Overwrite a warehouse's totals from the edit-inventory form."""
        with LogContext.bind(actor_id=actor.id, product_id=product_id, warehouse=warehouse):
            if variant_id is not None:
                change = self._mutations.update_variant_stock(
                    product_id, variant_id, warehouse, quantity, reserved,
                )
            else:
                change = self._mutations.update_warehouse_stock(
                    product_id, warehouse, quantity, reserved, size_label=size_label,
                )
            self._record(
                actor, change,
                f"Updated stock to {quantity} units ({reserved} reserved)",
            )
        return change

    def restock(
        self,
        actor: Actor,
        product_id: int,
        warehouse: str,
        quantity: int,
        *,
        variant_id: str | None = None,
        size_label: str | None = None,
        notes: str | None = None,
        received_at: datetime | None = None,
    ) -> StockChange:
        """Record a received lot."""
        with LogContext.bind(actor_id=actor.id, product_id=product_id, warehouse=warehouse):
            change = self._mutations.restock(
                product_id, warehouse, quantity,
                variant_id=variant_id,
                size_label=size_label,
                notes=notes,
                received_at=received_at,
            )
            summary = f"Received {quantity} units in batch {change.batch_id}"
            self._record(actor, change, f"{summary}: {notes}" if notes else summary)
        return change

    def _record(self, actor: Actor, change: StockChange, note: str) -> None:
        entry = AuditEntry(
            action_type=INVENTORY_UPDATED,
            performed_by=actor,
            target_entity=AuditTarget(
                type="inventory",
                id=str(change.product_id),
                name=change.unit_label,
            ),
            timestamp=self._clock.now(),
            changes=(
                FieldChange("quantity", str(change.old_quantity), str(change.new_quantity)),
                FieldChange("reserved", str(change.old_reserved), str(change.new_reserved)),
            ),
            metadata={
                "warehouse": change.warehouse.lower(),
                "notes": note,
                "batch_id": change.batch_id,
                "variant_id": change.variant_id,
                "size_label": change.size_label,
            },
        )
        try:
            self._audit_log.add_audit_log(entry)
        except Exception:
            logger.error("audit_entry_not_recorded", extra={
                "product_id": change.product_id,
                "batch_id": change.batch_id,
            }, exc_info=True)
            raise
        logger.info("inventory_audit_recorded", extra={
            "entry_id": entry.entry_id,
            "batch_id": change.batch_id,
        })
