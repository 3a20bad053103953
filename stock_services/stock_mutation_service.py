"""
stock_services.stock_mutation_service -- The only writer of warehouse stock.

Responsibility:
    Apply admin corrections, restocks and order-driven reservation moves to
    a product's warehouse stock and persist the result. Each public method
    is a read-modify-write of whole products through the ProductCatalog,
    guarded by the catalog's optimistic version.

Architecture position:
    Services -- stateful orchestration. Uses ``stock_engines.ledger`` for
    every transition, ``stock_engines.resolver`` for lookups, and the
    injected Clock for every timestamp.

Invariants enforced:
    - RESERVED_WITHIN_QUANTITY: each resulting WarehouseStock is checked
      with ``ledger.assert_consistent`` before anything is saved.
    - APPEND_ONLY_LEDGER: corrections append a CORRECTION checkpoint,
      restocks and returns append a RECEIPT batch.
    - Compare-and-swap: the version read with the product is the version
      the write expects. A concurrent writer wins; this caller gets
      OptimisticLockError and nothing is written.
    - Multi-line operations (``reserve_stock`` and friends) are all or
      nothing: every line is applied in memory first and the products are
      saved in one ``save_products`` call.

Failure modes:
    - ValidationError family: bad totals, non-positive movements, not
      enough stock or reservation, wrong entry point for the stock model.
    - NotFoundError family: product, variant, size option or warehouse.
    - OptimisticLockError: lost race; re-read and re-issue.
    - InvariantViolation: the stored aggregate was already inconsistent.

Audit relevance:
    Callers must pair every successful admin mutation with an audit entry
    (see ``InventoryAdminService``). The returned StockChange carries the
    before/after figures that entry needs.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from datetime import datetime
from typing import assert_never

from stock_config.schema import InventoryConfig
from stock_engines import ledger
from stock_engines.allocation import StockAllocation
from stock_engines.resolver import require_size_option, require_variant
from stock_kernel.domain.catalog import (
    FlatStockModel,
    LegacySizeStockModel,
    Product,
    VariantStockModel,
)
from stock_kernel.domain.clock import Clock, SystemClock, ensure_utc
from stock_kernel.domain.stock import WarehouseStock
from stock_kernel.exceptions import (
    InsufficientStockError,
    StockModelMismatchError,
    WarehouseNotFoundError,
)
from stock_kernel.logging_config import LogContext, get_logger
from stock_services.batch_ids import BatchIdSequence
from stock_services.catalog import ProductCatalog

logger = get_logger("services.stock_mutation")

Transition = Callable[[WarehouseStock], WarehouseStock]

RETURN_NOTE = "Returned units"


@dataclass(frozen=True, slots=True)
class StockChange:
    """Before/after figures of one warehouse entry touched by a mutation."""

    product_id: int
    product_name: str
    warehouse: str
    old_quantity: int
    old_reserved: int
    new_quantity: int
    new_reserved: int
    version: int
    variant_id: str | None = None
    size_label: str | None = None
    batch_id: str | None = None

    @property
    def unit_label(self) -> str:
        selector = self.variant_id or self.size_label
        return f"{self.product_name} ({selector})" if selector else self.product_name


@dataclass(frozen=True, slots=True)
class _Target:
    variant_id: str | None = None
    size_label: str | None = None


@dataclass(frozen=True, slots=True)
class _Applied:
    product: Product
    warehouse: str
    target: _Target
    old: WarehouseStock
    new: WarehouseStock
    batch_id: str | None


class StockMutationService:
    """
    Sole writer of warehouse stock.

    Contract:
        Receives a ProductCatalog, a Clock and (optionally) a shared
        BatchIdSequence via constructor injection.
    Guarantees:
        - Nothing is saved when any precondition fails.
        - Every returned StockChange satisfies ``0 <= reserved <= quantity``.
    Non-goals:
        - Does not write audit entries; see InventoryAdminService.
        - Does not release reservations on its own when orders are
          cancelled. ``release_stock`` exists for callers that do.
    """

    def __init__(
        self,
        catalog: ProductCatalog,
        clock: Clock | None = None,
        batch_ids: BatchIdSequence | None = None,
        config: InventoryConfig | None = None,
    ):
        self._catalog = catalog
        self._clock = clock or SystemClock()
        self._config = config or InventoryConfig()
        self._batch_ids = batch_ids or BatchIdSequence(self._config.batch_id_prefix)
        self._batch_ids.observe_products(catalog.get_products())

    # =========================================================================
    # Admin corrections
    # =========================================================================

    def update_warehouse_stock(
        self,
        product_id: int,
        warehouse: str,
        new_quantity: int,
        new_reserved: int,
        size_label: str | None = None,
    ) -> StockChange:
        """
        Set a warehouse's totals on a flat or legacy size-option product.

        ``size_label`` selects the size option and is required for
        size-option products. Variant products must use
        ``update_variant_stock``.
        """
        ledger.validate_totals(new_quantity, new_reserved)
        self._check_warehouse(warehouse)
        product, version = self._load(product_id)
        if isinstance(product.stock_model, VariantStockModel):
            raise StockModelMismatchError(
                product.id, product.stock_model_kind,
                "use update_variant_stock for variant products",
            )
        return self._correct(
            product, version, _Target(size_label=size_label),
            warehouse, new_quantity, new_reserved,
        )

    def update_variant_stock(
        self,
        product_id: int,
        variant_id: str,
        warehouse: str,
        new_quantity: int,
        new_reserved: int,
    ) -> StockChange:
        """Set a warehouse's totals for one variant."""
        ledger.validate_totals(new_quantity, new_reserved)
        self._check_warehouse(warehouse)
        product, version = self._load(product_id)
        return self._correct(
            product, version, _Target(variant_id=variant_id),
            warehouse, new_quantity, new_reserved,
        )

    def _correct(
        self,
        product: Product,
        version: int,
        target: _Target,
        warehouse: str,
        new_quantity: int,
        new_reserved: int,
    ) -> StockChange:
        now = self._clock.now()
        batch_id = self._batch_ids.next_id(now)

        def transition(ws: WarehouseStock) -> WarehouseStock:
            return ledger.correct(
                ws, new_quantity, new_reserved, batch_id=batch_id, at=now,
                notes=(
                    f"Stock corrected from {ws.quantity} ({ws.reserved} reserved) "
                    f"to {new_quantity} ({new_reserved} reserved)"
                ),
            )

        applied = self._apply(product, target, warehouse, transition, batch_id)
        return self._commit_one(applied, version, "warehouse_stock_updated")

    # =========================================================================
    # Receipts
    # =========================================================================

    def restock(
        self,
        product_id: int,
        warehouse: str,
        quantity: int,
        *,
        variant_id: str | None = None,
        size_label: str | None = None,
        notes: str | None = None,
        received_at: datetime | None = None,
    ) -> StockChange:
        """Record a received lot as a new batch."""
        self._check_warehouse(warehouse)
        product, version = self._load(product_id)
        applied = self._apply(
            product,
            _Target(variant_id=variant_id, size_label=size_label),
            warehouse,
            self._restock_transition(quantity, notes, received_at),
            None,
        )
        return self._commit_one(applied, version, "warehouse_stock_restocked")

    def _restock_transition(
        self,
        quantity: int,
        notes: str | None,
        received_at: datetime | None,
    ) -> Transition:
        now = self._clock.now()

        def transition(ws: WarehouseStock) -> WarehouseStock:
            return ledger.restock(
                ws, quantity,
                new_batch_id=lambda: self._batch_ids.next_id(now),
                received_at=ensure_utc(received_at) if received_at else now,
                at=now,
                notes=notes,
            )

        return transition

    # =========================================================================
    # Order-driven movements
    # =========================================================================

    def reserve_stock(self, allocations: Sequence[StockAllocation]) -> tuple[StockChange, ...]:
        """Hold units for an order. All lines succeed or none are saved."""
        now = self._clock.now()

        def make(alloc: StockAllocation, product: Product, label: str) -> Transition:
            if alloc.variant_id is not None:
                variant = require_variant(product, alloc.variant_id)
                if not variant.active:
                    raise InsufficientStockError(label, alloc.quantity, 0)
            return lambda ws: ledger.reserve(ws, alloc.quantity, at=now, target=label)

        return self._apply_allocations(allocations, make, "stock_reserved")

    def release_stock(self, allocations: Sequence[StockAllocation]) -> tuple[StockChange, ...]:
        """Free held units, e.g. for a cancelled order."""
        now = self._clock.now()

        def make(alloc: StockAllocation, product: Product, label: str) -> Transition:
            return lambda ws: ledger.release(ws, alloc.quantity, at=now, target=label)

        return self._apply_allocations(allocations, make, "stock_released")

    def confirm_sale(self, allocations: Sequence[StockAllocation]) -> tuple[StockChange, ...]:
        """Ship reserved units: on-hand and reserved both drop."""
        now = self._clock.now()

        def make(alloc: StockAllocation, product: Product, label: str) -> Transition:
            return lambda ws: ledger.fulfil(ws, alloc.quantity, at=now, target=label)

        return self._apply_allocations(allocations, make, "stock_sale_confirmed")

    def restore_stock(self, allocations: Sequence[StockAllocation]) -> tuple[StockChange, ...]:
        """Put refunded units back on hand as a returned-units receipt."""

        def make(alloc: StockAllocation, product: Product, label: str) -> Transition:
            return self._restock_transition(alloc.quantity, RETURN_NOTE, None)

        return self._apply_allocations(allocations, make, "stock_restored")

    def _apply_allocations(
        self,
        allocations: Sequence[StockAllocation],
        make_transition: Callable[[StockAllocation, Product, str], Transition],
        event: str,
    ) -> tuple[StockChange, ...]:
        products: dict[int, Product] = {}
        versions: dict[int, int] = {}
        applied: list[_Applied] = []

        for alloc in allocations:
            self._check_warehouse(alloc.warehouse_source)
            if alloc.product_id not in products:
                products[alloc.product_id], versions[alloc.product_id] = self._load(alloc.product_id)
            product = products[alloc.product_id]
            target = _Target(variant_id=alloc.variant_id, size_label=alloc.size_label)
            label = f"{_describe(product, target)} at {alloc.warehouse_source}"
            step = self._apply(
                product, target, alloc.warehouse_source,
                make_transition(alloc, product, label), None,
            )
            products[alloc.product_id] = step.product
            applied.append(step)

        if not applied:
            return ()

        saved = self._catalog.save_products(list(products.values()), versions)
        changes = tuple(self._change(step, saved[step.product.id]) for step in applied)
        for change in changes:
            logger.info(event, extra=_log_fields(change))
        return changes

    # =========================================================================
    # Internals
    # =========================================================================

    def _check_warehouse(self, warehouse: str) -> None:
        if warehouse not in self._config.warehouses:
            raise WarehouseNotFoundError(warehouse)

    def _load(self, product_id: int) -> tuple[Product, int]:
        version = self._catalog.get_version(product_id)
        product = self._catalog.get_product(product_id)
        self._batch_ids.observe_products([product])
        return product, version

    def _apply(
        self,
        product: Product,
        target: _Target,
        warehouse: str,
        transition: Transition,
        batch_id: str | None,
    ) -> _Applied:
        """Run ``transition`` on the addressed warehouse entry in memory."""
        model = product.stock_model
        match model:
            case VariantStockModel(variants=variants):
                if target.variant_id is None:
                    raise StockModelMismatchError(
                        product.id, product.stock_model_kind, "a variant_id is required",
                    )
                variant = require_variant(product, target.variant_id)
                stocks, old, new = _replace_entry(variant.warehouse_stock, warehouse, transition)
                updated_model = VariantStockModel(variants=tuple(
                    replace(v, warehouse_stock=stocks) if v.id == variant.id else v
                    for v in variants
                ))
            case LegacySizeStockModel(size_options=options):
                if target.size_label is None:
                    raise StockModelMismatchError(
                        product.id, product.stock_model_kind, "a size_label is required",
                    )
                option = require_size_option(product, target.size_label)
                stocks, old, new = _replace_entry(option.warehouse_stock, warehouse, transition)
                updated_model = LegacySizeStockModel(size_options=tuple(
                    replace(o, warehouse_stock=stocks) if o.label == option.label else o
                    for o in options
                ))
            case FlatStockModel(warehouse_stock=current):
                if target.variant_id is not None or target.size_label is not None:
                    raise StockModelMismatchError(
                        product.id, product.stock_model_kind,
                        "product has neither variants nor size options",
                    )
                stocks, old, new = _replace_entry(current, warehouse, transition)
                updated_model = FlatStockModel(warehouse_stock=stocks)
            case _ as unreachable:
                assert_never(unreachable)

        if batch_id is None and len(new.batches) > len(old.batches):
            batch_id = new.batches[-1].batch_id
        return _Applied(
            product=product.with_stock_model(updated_model),
            warehouse=warehouse,
            target=target,
            old=old,
            new=new,
            batch_id=batch_id,
        )

    def _commit_one(self, applied: _Applied, version: int, event: str) -> StockChange:
        with LogContext.bind(product_id=applied.product.id, warehouse=applied.warehouse):
            new_version = self._catalog.save_product(applied.product, version)
            change = self._change(applied, new_version)
            logger.info(event, extra=_log_fields(change))
        return change

    @staticmethod
    def _change(applied: _Applied, version: int) -> StockChange:
        return StockChange(
            product_id=applied.product.id,
            product_name=applied.product.name,
            warehouse=applied.warehouse,
            old_quantity=applied.old.quantity,
            old_reserved=applied.old.reserved,
            new_quantity=applied.new.quantity,
            new_reserved=applied.new.reserved,
            version=version,
            variant_id=applied.target.variant_id,
            size_label=applied.target.size_label,
            batch_id=applied.batch_id,
        )


def _replace_entry(
    stocks: tuple[WarehouseStock, ...],
    warehouse: str,
    transition: Transition,
) -> tuple[tuple[WarehouseStock, ...], WarehouseStock, WarehouseStock]:
    """Apply ``transition`` to the entry for ``warehouse``, creating it if absent."""
    for index, ws in enumerate(stocks):
        if ws.warehouse == warehouse:
            new = transition(ws)
            ledger.assert_consistent(new)
            return stocks[:index] + (new,) + stocks[index + 1:], ws, new
    empty = WarehouseStock(warehouse=warehouse)
    new = transition(empty)
    ledger.assert_consistent(new)
    return stocks + (new,), empty, new


def _describe(product: Product, target: _Target) -> str:
    selector = target.variant_id or target.size_label
    return f"{product.name} ({selector})" if selector else product.name


def _log_fields(change: StockChange) -> dict[str, object]:
    return {
        "product_id": change.product_id,
        "warehouse": change.warehouse,
        "variant_id": change.variant_id,
        "size_label": change.size_label,
        "old_quantity": change.old_quantity,
        "old_reserved": change.old_reserved,
        "new_quantity": change.new_quantity,
        "new_reserved": change.new_reserved,
        "batch_id": change.batch_id,
        "version": change.version,
    }
