"""
Tests for the read-side inventory views.
"""

import pytest

from stock_config.schema import InventoryConfig
from stock_engines.allocation import StockRequest
from stock_engines.reporting import StockStatus
from stock_kernel.exceptions import StockModelMismatchError, VariantNotFoundError
from stock_services.catalog import InMemoryProductCatalog
from stock_services.inventory_report_service import InventoryReportService
from tests.factories import day, flat_product, ws


@pytest.fixture
def reports(catalog) -> InventoryReportService:
    return InventoryReportService(catalog)


class TestSummaryAndStatus:

    def test_summary(self, reports):
        summary = reports.summary()
        assert summary.on_hand_by_warehouse == {"Lorenzo": 37, "Oroquieta": 7}
        assert summary.low_stock_products == 1

    def test_threshold_from_config(self, catalog):
        reports = InventoryReportService(catalog, InventoryConfig(low_stock_threshold=20))
        assert reports.summary().low_stock_products == 3

    def test_product_report(self, reports):
        report = reports.product_report(1)
        assert report.available == 13
        assert report.status is StockStatus.IN_STOCK
        assert [u.unit_id for u in report.units] == ["v1"]


class TestBatchViews:

    def test_history_after_correction(self, reports, mutations):
        mutations.restock(1, "Lorenzo", 4, variant_id="v1", received_at=day(-2))
        mutations.update_variant_stock(1, "v1", "Lorenzo", 12, 4)

        history = reports.batch_history(1, variant_id="v1")
        assert [e.batch.kind.value for e in history] == ["opening", "receipt", "correction"]
        assert [e.superseded for e in history] == [True, True, False]

    def test_most_recent_batch(self, reports, mutations):
        mutations.update_warehouse_stock(3, "Oroquieta", 1, 0)
        recent = reports.most_recent_batch(3)
        assert recent.warehouse == "Oroquieta"
        assert recent.batch_id.startswith("BATCH-")

    def test_most_recent_uses_legacy_label(self):
        catalog = InMemoryProductCatalog([flat_product(9, ws("Lorenzo", 3, 0, last_updated=day(2)))])
        reports = InventoryReportService(catalog, InventoryConfig(legacy_batch_label="Imported"))
        recent = reports.most_recent_batch(9)
        assert (recent.batch_id, recent.timestamp) == ("Imported", day(2))

    def test_most_recent_none_for_untimed_stock(self, reports):
        assert reports.most_recent_batch(2, size_label="Small") is None

    def test_unit_selector_required(self, reports):
        with pytest.raises(StockModelMismatchError):
            reports.batch_history(1)

    def test_unknown_variant(self, reports):
        with pytest.raises(VariantNotFoundError):
            reports.batch_history(1, variant_id="missing")


class TestConfiguredWarehouses:
    """Reports and allocation plans count only the configured warehouses."""

    @pytest.fixture
    def lorenzo_only(self, catalog) -> InventoryReportService:
        return InventoryReportService(catalog, InventoryConfig(warehouses=("Lorenzo",)))

    def test_summary(self, lorenzo_only):
        summary = lorenzo_only.summary()
        assert summary.on_hand_by_warehouse == {"Lorenzo": 37}
        assert summary.low_stock_products == 2

    def test_product_report(self, lorenzo_only):
        report = lorenzo_only.product_report(1)
        assert report.available == 8
        assert report.status is StockStatus.LOW_STOCK
        assert [w.warehouse for w in report.units[0].warehouses] == ["Lorenzo"]

    def test_plan_allocation(self, reports, lorenzo_only):
        request = [StockRequest(1, 10, variant_id="v1")]
        assert reports.plan_allocation(request).success
        plan = lorenzo_only.plan_allocation(request)
        assert not plan.success
        assert [(a.warehouse_source, a.quantity) for a in plan.allocations] == [("Lorenzo", 8)]

    def test_check_availability(self, reports, lorenzo_only):
        request = [StockRequest(1, 9, variant_id="v1")]
        assert reports.check_availability(request).success
        assert lorenzo_only.check_availability(request).errors == (
            "Insufficient stock for Oslo Chair (v1). Requested: 9, Available: 8",
        )
