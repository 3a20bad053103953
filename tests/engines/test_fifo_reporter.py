"""
Tests for the FIFO batch reporter.

Covers:
- Oldest-first ordering across warehouses
- Stable ordering for equal receipt times
- Superseded flags in batch history, storefront notes included
- most_recent_batch, including the legacy fallback
"""

from stock_engines.fifo import batch_history, list_batches_fifo, most_recent_batch
from stock_kernel.domain.stock import BatchKind
from tests.factories import batch, day, ledger_ws, legacy_batch, ws


class TestListBatchesFifo:

    def test_sorted_oldest_first(self):
        stocks = [ws("Lorenzo", 0, 0, batch("D3", 1, 0, day(3)), batch("D1", 1, 0, day(1)), batch("D2", 1, 0, day(2)))]
        assert [b.batch_id for b in list_batches_fifo(stocks)] == ["D1", "D2", "D3"]

    def test_interleaves_warehouses(self):
        stocks = [
            ws("Lorenzo", 0, 0, batch("L1", 1, 0, day(1)), batch("L3", 1, 0, day(3))),
            ws("Oroquieta", 0, 0, batch("O2", 1, 0, day(2))),
        ]
        assert [b.batch_id for b in list_batches_fifo(stocks)] == ["L1", "O2", "L3"]

    def test_ties_keep_insertion_order(self):
        stocks = [
            ws("Lorenzo", 0, 0, batch("FIRST", 1, 0, day(1)), batch("SECOND", 1, 0, day(1))),
            ws("Oroquieta", 0, 0, batch("THIRD", 1, 0, day(1))),
        ]
        assert [b.batch_id for b in list_batches_fifo(stocks)] == ["FIRST", "SECOND", "THIRD"]

    def test_flat_entries_have_no_batches(self):
        assert list_batches_fifo([ws("Lorenzo", 5, 0)]) == []


class TestBatchHistory:

    def test_superseded_flag(self):
        stocks = [
            ws(
                "Lorenzo", 0, 0,
                batch("B1", 5, 0, day(0)),
                batch("C1", 4, 0, day(1), kind=BatchKind.CORRECTION),
                batch("B2", 2, 0, day(2)),
            ),
        ]
        history = batch_history(stocks)
        assert [(e.batch.batch_id, e.superseded) for e in history] == [
            ("B1", True),
            ("C1", False),
            ("B2", False),
        ]
        assert {e.warehouse for e in history} == {"Lorenzo"}

    def test_storefront_notes_flagged_as_history(self):
        stocks = [
            ledger_ws(
                "Lorenzo",
                legacy_batch("N1", 10, day(0)),
                legacy_batch("N2", -3, day(1)),
                batch("OPEN", 7, 4, day(2), kind=BatchKind.OPENING),
            ),
            ws("Oroquieta", 2, 0, legacy_batch("N3", 2, day(3))),
        ]
        history = batch_history(stocks)
        assert [(e.batch.batch_id, e.superseded) for e in history] == [
            ("N1", True),
            ("N2", True),
            ("OPEN", False),
            ("N3", True),
        ]


class TestMostRecentBatch:

    def test_latest_across_warehouses(self):
        stocks = [
            ws("Lorenzo", 0, 0, batch("L1", 1, 0, day(1))),
            ws("Oroquieta", 0, 0, batch("O5", 1, 0, day(5)), batch("O2", 1, 0, day(2))),
        ]
        info = most_recent_batch(stocks)
        assert (info.batch_id, info.warehouse, info.timestamp) == ("O5", "Oroquieta", day(5))

    def test_legacy_fallback(self):
        stocks = [
            ws("Lorenzo", 0, 0, batch("L1", 1, 0, day(1))),
            ws("Oroquieta", 4, 0, last_updated=day(7)),
        ]
        info = most_recent_batch(stocks)
        assert info.batch_id == "Legacy"
        assert info.timestamp == day(7)

    def test_custom_legacy_label(self):
        info = most_recent_batch([ws("Lorenzo", 4, 0, last_updated=day(1))], legacy_label="Imported")
        assert info.batch_id == "Imported"

    def test_first_seen_wins_on_tie(self):
        stocks = [
            ws("Lorenzo", 0, 0, batch("L1", 1, 0, day(1))),
            ws("Oroquieta", 0, 0, batch("O1", 1, 0, day(1))),
        ]
        assert most_recent_batch(stocks).batch_id == "L1"

    def test_none_without_timestamps(self):
        assert most_recent_batch([ws("Lorenzo", 3, 0)]) is None
        assert most_recent_batch([]) is None
