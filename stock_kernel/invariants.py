"""
Stock Invariants Contract.

These invariants are structural law for warehouse stock. No configuration
value may switch them off. This module declares them explicitly; enforcement
is distributed across the aggregation engine (reporting), the ledger engine
(mutation preconditions) and the mutation service (final check before save).
"""

from enum import Enum, unique


@unique
class StockInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel.

    Each value names one structural guarantee about warehouse stock.
    """

    RESERVED_WITHIN_QUANTITY = "reserved_within_quantity"
    """``0 <= reserved <= quantity`` for every WarehouseStock after any
    successful mutation, and for every stored batch."""

    NON_NEGATIVE_AVAILABILITY = "non_negative_availability"
    """Available-to-sell is clamped at zero; no stock model ever reports a
    negative count."""

    APPEND_ONLY_LEDGER = "append_only_ledger"
    """Restocks and corrections append batches. Superseded batches and
    storefront delta notes are never rewritten or deleted."""

    FLAT_MIRRORS_LEDGER = "flat_mirrors_ledger"
    """When a warehouse entry carries ledger batches, its flat quantity/reserved
    equal the totals of its live batches. Storefront delta notes are not
    ledger batches and never count. A mismatch is refused, not repaired."""

    ACTIVE_ONLY_AGGREGATION = "active_only_aggregation"
    """Inactive variants contribute nothing to availability but keep their
    stock history."""


ALL_STOCK_INVARIANTS: frozenset[StockInvariant] = frozenset(StockInvariant)

# The kernel package may not import from these packages.
# This is enforced by tests/architecture/test_kernel_boundary.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "stock_engines",
    "stock_services",
    "stock_config",
)
