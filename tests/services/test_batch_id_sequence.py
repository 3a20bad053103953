"""
Tests for batch id allocation.
"""

import threading

import pytest

from stock_services.batch_ids import BatchIdSequence, iter_batch_ids
from tests.factories import (
    T0,
    batch,
    day,
    legacy_product,
    size_option,
    variant,
    variant_product,
    ws,
)


class TestBatchIdSequence:

    def test_format(self):
        ids = BatchIdSequence()
        assert ids.next_id(T0) == "BATCH-20241209-000001"
        assert ids.next_id(day(1)) == "BATCH-20241210-000002"

    def test_custom_prefix_and_start(self):
        ids = BatchIdSequence(prefix="LOT", start=99)
        assert ids.next_id(T0) == "LOT-20241209-000100"

    def test_observe_moves_forward_only(self):
        ids = BatchIdSequence()
        ids.observe("BATCH-20240101-000050")
        ids.observe("BATCH-20240101-000010")
        assert ids.last == 50

    def test_observe_ignores_foreign_ids(self):
        ids = BatchIdSequence()
        ids.observe("Legacy")
        ids.observe("PO-17")
        assert ids.last == 0

    @pytest.mark.parametrize("batch_id", [
        "BATCH-20241209",
        "BATCH-20241209-143015-042",
        "BATCH-2024120-000900",
        "LOT-20241209-000900",
        "XBATCH-20241209-000900",
        "BATCH-20241209-000900-copy",
    ])
    def test_observe_ignores_ids_of_another_shape(self, batch_id):
        ids = BatchIdSequence()
        ids.observe(batch_id)
        assert ids.last == 0

    def test_observe_matches_configured_prefix(self):
        ids = BatchIdSequence(prefix="LOT")
        ids.observe("BATCH-20241209-000900")
        ids.observe("LOT-20241209-000042")
        assert ids.last == 42
        assert ids.next_id(T0) == "LOT-20241209-000043"

    def test_observe_products(self):
        products = [
            variant_product(1, variant("v1", ws("Lorenzo", 0, 0, batch("BATCH-20240101-000007", 1)))),
            legacy_product(2, size_option("Small", ws("Oroquieta", 0, 0, batch("BATCH-20240102-000012", 1)))),
        ]
        ids = BatchIdSequence()
        ids.observe_products(products)
        assert ids.last == 12

    def test_iter_batch_ids(self):
        product = variant_product(
            1,
            variant("a", ws("Lorenzo", 0, 0, batch("A1", 1), batch("A2", 1))),
            variant("b", ws("Oroquieta", 0, 0, batch("B1", 1))),
        )
        assert list(iter_batch_ids(product)) == ["A1", "A2", "B1"]

    def test_unique_across_threads(self):
        ids = BatchIdSequence()
        issued: list[str] = []
        lock = threading.Lock()

        def worker():
            for _ in range(200):
                batch_id = ids.next_id(T0)
                with lock:
                    issued.append(batch_id)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(issued) == 1600
        assert len(set(issued)) == 1600
