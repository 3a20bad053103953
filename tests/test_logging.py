"""
Tests for the structured JSON logging used across the stock packages.
"""

import json
import logging
import threading
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO

import pytest

from stock_kernel.domain.stock import BatchKind
from stock_kernel.exceptions import InsufficientStockError, WarehouseNotFoundError
from stock_kernel.logging_config import (
    CONTEXT_FIELDS,
    LogContext,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture
def stream():
    """A fresh stock_kernel handler writing into a StringIO."""
    reset_logging()
    buffer = StringIO()
    configure_logging(stream=buffer, level=logging.DEBUG)
    yield buffer
    reset_logging()
    configure_logging(level=logging.DEBUG)


def _lines(buffer: StringIO) -> list[dict]:
    return [json.loads(line) for line in buffer.getvalue().splitlines() if line]


def _last(buffer: StringIO) -> dict:
    return _lines(buffer)[-1]


class TestRecordShape:

    def test_core_keys(self, stream):
        get_logger("engines.allocation").info("allocation_planned")

        record = _last(stream)
        assert record["message"] == "allocation_planned"
        assert record["level"] == "INFO"
        assert record["logger"] == "stock_kernel.engines.allocation"
        assert datetime.fromisoformat(record["ts"]).tzinfo is not None

    def test_extra_keys(self, stream):
        get_logger("ledger").info(
            "warehouse_stock_restocked",
            extra={"quantity": 12, "batch_id": "BATCH-20241209-000001"},
        )
        record = _last(stream)
        assert (record["quantity"], record["batch_id"]) == (12, "BATCH-20241209-000001")

    @pytest.mark.parametrize(
        "value, expected",
        [
            (datetime(2024, 12, 9, 9, 0, tzinfo=timezone.utc), "2024-12-09T09:00:00+00:00"),
            (date(2024, 12, 9), "2024-12-09"),
            (BatchKind.CORRECTION, "correction"),
            (Decimal("1.50"), "1.50"),
            (("Lorenzo", "Oroquieta"), ["Lorenzo", "Oroquieta"]),
        ],
    )
    def test_values_encoded(self, stream, value, expected):
        get_logger("test").info("encoded", extra={"value": value})
        assert _last(stream)["value"] == expected

    def test_one_json_object_per_line(self, stream):
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"warehouse_count": 2})
        logger.debug("third")
        assert [r["message"] for r in _lines(stream)] == ["first", "second", "third"]

    def test_level_threshold(self):
        reset_logging()
        buffer = StringIO()
        configure_logging(stream=buffer, level=logging.WARNING)
        try:
            get_logger("test").info("dropped")
            get_logger("test").warning("kept")
            assert [r["message"] for r in _lines(buffer)] == ["kept"]
        finally:
            reset_logging()
            configure_logging(level=logging.DEBUG)


class TestExceptionFields:

    def test_plain_exception(self, stream):
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("test").exception("failed")

        record = _last(stream)
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "exc_code" not in record
        assert "Traceback" in record["traceback"]

    def test_stock_error_attributes(self, stream):
        try:
            raise InsufficientStockError("Oslo Chair (v1) at Lorenzo", 9, 8)
        except InsufficientStockError:
            get_logger("test").error("reserve_failed", exc_info=True)

        record = _last(stream)
        assert record["exc_code"] == "INSUFFICIENT_STOCK"
        assert record["exc_target"] == "Oslo Chair (v1) at Lorenzo"
        assert (record["exc_requested"], record["exc_available"]) == (9, 8)

    def test_warehouse_error(self, stream):
        try:
            raise WarehouseNotFoundError("Cebu")
        except WarehouseNotFoundError:
            get_logger("test").warning("unknown_warehouse", exc_info=True)

        assert _last(stream)["exc_warehouse"] == "Cebu"


class TestLogContext:

    def test_fields_stamped_on_records(self, stream):
        LogContext.set(correlation_id="req-1", warehouse="Lorenzo")
        get_logger("test").info("with_context")

        record = _last(stream)
        assert record["correlation_id"] == "req-1"
        assert record["warehouse"] == "Lorenzo"
        assert "product_id" not in record

    def test_context_wins_over_extra(self, stream):
        with LogContext.bind(warehouse="Lorenzo"):
            get_logger("test").info("clash", extra={"warehouse": "Oroquieta"})
        assert _last(stream)["warehouse"] == "Lorenzo"

    def test_set_is_additive(self):
        LogContext.set(correlation_id="a")
        LogContext.set(warehouse="Oroquieta", actor_id=None)
        assert LogContext.get_all() == {"correlation_id": "a", "warehouse": "Oroquieta"}

    def test_values_stringified(self):
        LogContext.set(product_id=7)
        with LogContext.bind(product_id=42):
            assert LogContext.get_all()["product_id"] == "42"
        assert LogContext.get_all()["product_id"] == "7"

    def test_nested_bind_restores_each_level(self):
        with LogContext.bind(actor_id="admin-1"):
            with LogContext.bind(product_id=3, warehouse="Lorenzo"):
                assert set(LogContext.get_all()) == {"actor_id", "product_id", "warehouse"}
            assert LogContext.get_all() == {"actor_id": "admin-1"}
        assert LogContext.get_all() == {}

    def test_bind_restores_after_error(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(warehouse="Lorenzo"):
                raise RuntimeError("inside")
        assert LogContext.get_all() == {}

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError, match="sku"):
            LogContext.set(sku="OSLO-1")
        with pytest.raises(ValueError):
            with LogContext.bind(bin="A3"):
                pass

    def test_all_declared_fields(self):
        LogContext.set(**{name: name.upper() for name in CONTEXT_FIELDS})
        assert list(LogContext.get_all()) == list(CONTEXT_FIELDS)

    def test_threads_do_not_share_context(self):
        LogContext.set(actor_id="main")
        seen: dict[str, dict] = {}

        def worker():
            LogContext.set(warehouse="Oroquieta")
            seen["worker"] = LogContext.get_all()

        t = threading.Thread(target=worker)
        t.start()
        t.join()

        assert seen["worker"]["warehouse"] == "Oroquieta"
        assert LogContext.get_all() == {"actor_id": "main"}


class TestConfigureLogging:

    def test_second_call_is_ignored(self, stream):
        configure_logging(stream=StringIO())
        assert len(logging.getLogger("stock_kernel").handlers) == 1

    def test_reset_allows_reconfigure(self):
        reset_logging()
        assert logging.getLogger("stock_kernel").handlers == []
        buffer = StringIO()
        configure_logging(stream=buffer)
        try:
            get_logger("x").info("after_reset")
            assert _last(buffer)["message"] == "after_reset"
        finally:
            reset_logging()
            configure_logging(level=logging.DEBUG)

    def test_child_loggers_share_handler(self, stream):
        get_logger("services.inventory_admin").debug("nested")
        assert _last(stream)["logger"] == "stock_kernel.services.inventory_admin"
