"""
Batch id allocation.

Ids look like ``BATCH-20241209-000042``: prefix, the date the batch was
recorded, then a process-wide counter that only goes up. The counter is
seeded from the highest id already stored so restarts never reuse a
number. Only ids of exactly this shape and prefix seed it; storefront ids
such as ``BATCH-20241209-143015-042`` are ignored.
"""

from __future__ import annotations

import re
import threading
from collections.abc import Iterable
from datetime import datetime

from stock_kernel.domain.catalog import (
    FlatStockModel,
    LegacySizeStockModel,
    Product,
    VariantStockModel,
)


class BatchIdSequence:
    """Thread-safe monotonically increasing batch id source."""

    def __init__(self, prefix: str = "BATCH", start: int = 0):
        self._prefix = prefix
        self._pattern = re.compile(rf"{re.escape(prefix)}-\d{{8}}-(\d{{6,}})")
        self._last = start
        self._lock = threading.Lock()

    @property
    def last(self) -> int:
        return self._last

    def observe(self, batch_id: str) -> None:
        """Move the counter past an id that already exists."""
        match = self._pattern.fullmatch(batch_id)
        if match is None:
            return
        number = int(match.group(1))
        with self._lock:
            if number > self._last:
                self._last = number

    def observe_products(self, products: Iterable[Product]) -> None:
        for product in products:
            for batch_id in iter_batch_ids(product):
                self.observe(batch_id)

    def next_id(self, at: datetime) -> str:
        with self._lock:
            self._last += 1
            number = self._last
        return f"{self._prefix}-{at:%Y%m%d}-{number:06d}"


def iter_batch_ids(product: Product) -> Iterable[str]:
    model = product.stock_model
    if isinstance(model, VariantStockModel):
        stocks = [ws for v in model.variants for ws in v.warehouse_stock]
    elif isinstance(model, LegacySizeStockModel):
        stocks = [ws for o in model.size_options for ws in o.warehouse_stock]
    elif isinstance(model, FlatStockModel):
        stocks = list(model.warehouse_stock)
    else:
        stocks = []
    for ws in stocks:
        for batch in ws.batches:
            yield batch.batch_id
