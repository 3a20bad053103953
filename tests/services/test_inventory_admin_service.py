"""
Tests for InventoryAdminService: every successful admin stock change is
paired with exactly one inventory_updated audit entry.
"""

import pytest

from stock_kernel.exceptions import ReservedExceedsQuantityError, WarehouseNotFoundError
from stock_services.audit import INVENTORY_UPDATED, FieldChange
from stock_services.inventory_admin_service import InventoryAdminService
from tests.factories import day


class _FailingSink:
    def add_audit_log(self, entry):
        raise RuntimeError("audit store unavailable")


class TestUpdateStock:

    def test_variant_edit_audited(self, admin_service, admin_actor, audit_log, deterministic_clock):
        change = admin_service.update_stock(admin_actor, 1, "Lorenzo", 12, 4, variant_id="v1")

        (entry,) = audit_log.entries
        assert entry.action_type == INVENTORY_UPDATED
        assert entry.performed_by == admin_actor
        assert entry.timestamp == deterministic_clock.now()
        assert (entry.target_entity.type, entry.target_entity.id) == ("inventory", "1")
        assert entry.target_entity.name == "Oslo Chair (v1)"
        assert entry.changes == (
            FieldChange("quantity", "10", "12"),
            FieldChange("reserved", "2", "4"),
        )
        assert entry.metadata["warehouse"] == "lorenzo"
        assert entry.metadata["notes"] == "Updated stock to 12 units (4 reserved)"
        assert entry.metadata["batch_id"] == change.batch_id
        assert entry.metadata["variant_id"] == "v1"

    def test_size_option_edit(self, admin_service, admin_actor, audit_log):
        admin_service.update_stock(admin_actor, 2, "Oroquieta", 1, 0, size_label="Small")
        (entry,) = audit_log.entries_for("2")
        assert entry.metadata["size_label"] == "Small"
        assert entry.target_entity.name == "Bamboo Shelf (Small)"

    def test_failed_edit_writes_nothing(self, admin_service, admin_actor, audit_log):
        with pytest.raises(ReservedExceedsQuantityError):
            admin_service.update_stock(admin_actor, 1, "Lorenzo", 5, 8, variant_id="v1")
        with pytest.raises(WarehouseNotFoundError):
            admin_service.update_stock(admin_actor, 3, "Davao", 5, 0)
        assert len(audit_log) == 0

    def test_one_entry_per_edit(self, admin_service, admin_actor, audit_log):
        admin_service.update_stock(admin_actor, 3, "Lorenzo", 18, 5)
        admin_service.update_stock(admin_actor, 3, "Oroquieta", 4, 0)
        assert len(audit_log) == 2
        assert len({e.entry_id for e in audit_log.entries}) == 2


class TestRestock:

    def test_restock_audited_with_batch(self, admin_service, admin_actor, audit_log):
        change = admin_service.restock(
            admin_actor, 1, "Oroquieta", 6, variant_id="v1", notes="PO-88", received_at=day(-1),
        )
        (entry,) = audit_log.entries
        assert entry.metadata["notes"] == f"Received 6 units in batch {change.batch_id}: PO-88"
        assert entry.changes[0] == FieldChange("quantity", "5", "11")

    def test_restock_without_notes(self, admin_service, admin_actor, audit_log):
        change = admin_service.restock(admin_actor, 3, "Oroquieta", 2)
        assert audit_log.entries[0].metadata["notes"] == f"Received 2 units in batch {change.batch_id}"


class TestAuditSinkFailure:

    def test_sink_error_propagates_and_is_logged(self, mutations, admin_actor, catalog, captured_logs):
        service = InventoryAdminService(mutations, _FailingSink())
        with pytest.raises(RuntimeError):
            service.update_stock(admin_actor, 3, "Lorenzo", 18, 5)

        assert catalog.get_version(3) == 2
        error = next(r for r in captured_logs() if r["message"] == "audit_entry_not_recorded")
        assert error["level"] == "ERROR"
        assert error["actor_id"] == "admin-1"
