"""
Warehouse source allocation for order lines.

Responsibility:
    Decide which warehouse each order line ships from. Warehouses are tried
    most-available first and a line is split across both when neither can
    cover it alone. Also answers the cheaper question "can these lines be
    fulfilled at all?" before checkout commits.

Architecture position:
    Engines -- pure calculation, zero I/O. The products are passed in; the
    result is a plan. Nothing is reserved here (see
    ``StockMutationService.reserve_stock``).

Behaviour:
    - Units allocated to earlier lines of the same call are not offered
      again to later lines for the same unit and warehouse.
    - A short line keeps the partial allocations it did get; the result is
      unsuccessful and carries one error message per failing line.
    - A missing product, variant or size option is "no stock", reported as
      an error message rather than raised.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Collection, Iterable, Sequence
from dataclasses import dataclass

from stock_engines.aggregation import available, known_warehouse_stocks
from stock_engines.resolver import sellable_warehouse_stocks
from stock_kernel.domain.catalog import Product
from stock_kernel.logging_config import get_logger

logger = get_logger("engines.allocation")


@dataclass(frozen=True, slots=True)
class StockRequest:
    """One order line asking for stock."""

    product_id: int
    quantity: int
    variant_id: str | None = None
    size_label: str | None = None


@dataclass(frozen=True, slots=True)
class StockAllocation:
    """Units of one order line assigned to one warehouse."""

    product_id: int
    quantity: int
    warehouse_source: str
    variant_id: str | None = None
    size_label: str | None = None


@dataclass(frozen=True, slots=True)
class AllocationResult:
    success: bool
    allocations: tuple[StockAllocation, ...]
    errors: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class AvailabilityResult:
    success: bool
    errors: tuple[str, ...]


_UnitKey = tuple[int, str | None, str | None, str]


def _index(products: Iterable[Product]) -> dict[int, Product]:
    return {p.id: p for p in products}


def _describe(product: Product, request: StockRequest) -> str:
    selector = request.variant_id or request.size_label
    return f"{product.name} ({selector})" if selector else product.name


def request_available(
    product: Product,
    request: StockRequest,
    warehouses: Collection[str] | None = None,
) -> int:
    """Units available for the line's unit across the counted warehouses."""
    stocks = sellable_warehouse_stocks(product, request.variant_id, request.size_label)
    return sum(available(ws) for ws in known_warehouse_stocks(stocks, warehouses))


def allocate_warehouse_sources(
    products: Iterable[Product],
    requests: Sequence[StockRequest],
    warehouses: Collection[str] | None = None,
) -> AllocationResult:
    """Plan warehouse sources for every request, most stock first."""
    by_id = _index(products)
    allocations: list[StockAllocation] = []
    errors: list[str] = []
    consumed: dict[_UnitKey, int] = defaultdict(int)

    for request in requests:
        product = by_id.get(request.product_id)
        if product is None:
            errors.append(f"Product ID {request.product_id} not found")
            continue

        stocks = known_warehouse_stocks(
            sellable_warehouse_stocks(product, request.variant_id, request.size_label),
            warehouses,
        )
        if not stocks:
            errors.append(f"No warehouse stock data for {_describe(product, request)}")
            continue

        def unit_key(warehouse: str) -> _UnitKey:
            return (request.product_id, request.variant_id, request.size_label, warehouse)

        candidates = [
            (ws.warehouse, available(ws) - consumed[unit_key(ws.warehouse)])
            for ws in stocks
        ]
        ranked = sorted(
            ((name, qty) for name, qty in candidates if qty > 0),
            key=lambda pair: pair[1],
            reverse=True,
        )

        remaining = request.quantity
        for warehouse, free in ranked:
            if remaining <= 0:
                break
            take = min(remaining, free)
            allocations.append(StockAllocation(
                product_id=request.product_id,
                quantity=take,
                warehouse_source=warehouse,
                variant_id=request.variant_id,
                size_label=request.size_label,
            ))
            consumed[unit_key(warehouse)] += take
            remaining -= take

        if remaining > 0:
            total = sum(qty for _, qty in candidates if qty > 0)
            errors.append(
                f"Insufficient stock for {_describe(product, request)}. "
                f"Requested: {request.quantity}, Available: {total}"
            )

    if errors:
        logger.warning("allocation_incomplete", extra={
            "request_count": len(requests),
            "error_count": len(errors),
        })
    return AllocationResult(
        success=not errors,
        allocations=tuple(allocations),
        errors=tuple(errors),
    )


def validate_stock_availability(
    products: Iterable[Product],
    requests: Sequence[StockRequest],
    warehouses: Collection[str] | None = None,
) -> AvailabilityResult:
    """Check every request against current availability without allocating."""
    by_id = _index(products)
    errors: list[str] = []
    for request in requests:
        product = by_id.get(request.product_id)
        if product is None:
            errors.append(f"Product ID {request.product_id} not found")
            continue
        units = request_available(product, request, warehouses)
        if units < request.quantity:
            errors.append(
                f"Insufficient stock for {_describe(product, request)}. "
                f"Requested: {request.quantity}, Available: {units}"
            )
    return AvailabilityResult(success=not errors, errors=tuple(errors))
