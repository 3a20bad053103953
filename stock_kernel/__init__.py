"""
Stock Kernel - warehouse stock allocation core.

A multi-warehouse inventory core with:
- Append-only FIFO batch ledger per (sellable unit, warehouse)
- Reservation accounting with a hard reserved <= quantity invariant
- One read API over variant, legacy size-option and flat stock shapes
- Typed errors and structured JSON logging
"""

__version__ = "0.1.0"
