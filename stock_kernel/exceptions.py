"""
Typed Exception Hierarchy for the Stock Kernel.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from StockKernelError:

    StockKernelError (base)
    |
    +-- ValidationError
    |   +-- NegativeQuantityError
    |   +-- ReservedExceedsQuantityError
    |   +-- InsufficientStockError
    |   +-- InsufficientReservationError
    |   +-- StockModelMismatchError
    |   +-- MalformedRecordError
    |
    +-- InvariantViolation
    |   +-- BatchInvariantViolation
    |   +-- LedgerMirrorMismatchError
    |
    +-- NotFoundError
    |   +-- ProductNotFoundError
    |   +-- VariantNotFoundError
    |   +-- SizeOptionNotFoundError
    |   +-- WarehouseNotFoundError
    |
    +-- ConcurrencyError
        +-- OptimisticLockError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                        | When Raised
-------------|-----------------------------|-----------------------------------------
Validation   | NEGATIVE_QUANTITY           | quantity or reserved below zero
             | RESERVED_EXCEEDS_QUANTITY   | reserved > quantity on a mutation
             | INSUFFICIENT_STOCK          | reserve/allocate more than available
             | INSUFFICIENT_RESERVATION    | release/fulfil more than reserved
             | STOCK_MODEL_MISMATCH        | mutation entry point wrong for product shape
             | MALFORMED_RECORD            | persisted document cannot be parsed
-------------|-----------------------------|-----------------------------------------
Invariant    | BATCH_INVARIANT_VIOLATION   | stored batch has reserved > quantity
             | LEDGER_MIRROR_MISMATCH      | flat totals differ from live batch sums
-------------|-----------------------------|-----------------------------------------
Not found    | PRODUCT_NOT_FOUND           | product id not in the catalog
             | VARIANT_NOT_FOUND           | variant id not on the product
             | SIZE_OPTION_NOT_FOUND       | legacy size label not on the product
             | WAREHOUSE_NOT_FOUND         | warehouse name is not a known warehouse
-------------|-----------------------------|-----------------------------------------
Concurrency  | OPTIMISTIC_LOCK_CONFLICT    | product changed since it was read

===============================================================================
HANDLING PATTERNS
===============================================================================

1. ValidationError aborts the mutation; nothing is written. Admin callers
   surface the message and keep the edit form open.

2. InvariantViolation is reported, never auto-healed: correcting it silently
   could hide a real oversell.

3. NotFoundError means "no stock" to availability queries and a hard
   failure to mutation targets.

4. OptimisticLockError: re-read the product and re-issue the request.
"""


class StockKernelError(Exception):
    """
    Base exception for all stock kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "STOCK_KERNEL_ERROR"


# Validation-related exceptions


class ValidationError(StockKernelError):
    """Caller supplied values the stock mutation API must reject."""

    code: str = "VALIDATION_ERROR"


class NegativeQuantityError(ValidationError):
    """Quantity or reserved count is negative."""

    code: str = "NEGATIVE_QUANTITY"

    def __init__(self, field_name: str, value: int):
        self.field_name = field_name
        self.value = value
        super().__init__(f"{field_name} cannot be negative (got {value})")


class ReservedExceedsQuantityError(ValidationError):
    """Reserved count is larger than the quantity on hand."""

    code: str = "RESERVED_EXCEEDS_QUANTITY"

    def __init__(self, quantity: int, reserved: int):
        self.quantity = quantity
        self.reserved = reserved
        super().__init__(
            f"Total quantity cannot be less than reserved quantity "
            f"(quantity={quantity}, reserved={reserved})"
        )


class InsufficientStockError(ValidationError):
    """More units were requested than are available to sell."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, target: str, requested: int, available: int):
        self.target = target
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for {target}. "
            f"Requested: {requested}, Available: {available}"
        )


class InsufficientReservationError(ValidationError):
    """More units were released or fulfilled than are currently reserved."""

    code: str = "INSUFFICIENT_RESERVATION"

    def __init__(self, target: str, requested: int, reserved: int):
        self.target = target
        self.requested = requested
        self.reserved = reserved
        super().__init__(
            f"Cannot release {requested} units for {target}; "
            f"only {reserved} reserved"
        )


class StockModelMismatchError(ValidationError):
    """The mutation entry point does not match the product's stock shape."""

    code: str = "STOCK_MODEL_MISMATCH"

    def __init__(self, product_id: int, stock_model: str, reason: str):
        self.product_id = product_id
        self.stock_model = stock_model
        self.reason = reason
        super().__init__(
            f"Product {product_id} uses the {stock_model} stock model: {reason}"
        )


class MalformedRecordError(ValidationError):
    """A persisted product document could not be parsed."""

    code: str = "MALFORMED_RECORD"

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Malformed record at {path}: {reason}")


# Invariant-related exceptions


class InvariantViolation(StockKernelError):
    """Stored data breaks a stock invariant. Reported, never auto-corrected."""

    code: str = "INVARIANT_VIOLATION"


class BatchInvariantViolation(InvariantViolation):
    """A stored batch has reserved > quantity or a negative count."""

    code: str = "BATCH_INVARIANT_VIOLATION"

    def __init__(self, warehouse: str, batch_id: str, quantity: int, reserved: int):
        self.warehouse = warehouse
        self.batch_id = batch_id
        self.quantity = quantity
        self.reserved = reserved
        super().__init__(
            f"Batch {batch_id} at {warehouse} is inconsistent: "
            f"quantity={quantity}, reserved={reserved}"
        )


class LedgerMirrorMismatchError(InvariantViolation):
    """Flat totals of a batch-tracked entry disagree with its live batches."""

    code: str = "LEDGER_MIRROR_MISMATCH"

    def __init__(
        self,
        warehouse: str,
        flat_quantity: int,
        flat_reserved: int,
        ledger_quantity: int,
        ledger_reserved: int,
    ):
        self.warehouse = warehouse
        self.flat_quantity = flat_quantity
        self.flat_reserved = flat_reserved
        self.ledger_quantity = ledger_quantity
        self.ledger_reserved = ledger_reserved
        super().__init__(
            f"Stock at {warehouse} records {flat_quantity} ({flat_reserved} reserved) "
            f"but its live batches hold {ledger_quantity} ({ledger_reserved} reserved)"
        )


# Lookup-related exceptions


class NotFoundError(StockKernelError):
    """A product, variant, size option or warehouse lookup missed."""

    code: str = "NOT_FOUND"


class ProductNotFoundError(NotFoundError):
    """Product with given ID was not found."""

    code: str = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__(f"Product ID {product_id} not found")


class VariantNotFoundError(NotFoundError):
    """Variant with given ID was not found on the product."""

    code: str = "VARIANT_NOT_FOUND"

    def __init__(self, product_id: int, variant_id: str):
        self.product_id = product_id
        self.variant_id = variant_id
        super().__init__(f"Variant {variant_id} not found on product {product_id}")


class SizeOptionNotFoundError(NotFoundError):
    """Legacy size option with given label was not found on the product."""

    code: str = "SIZE_OPTION_NOT_FOUND"

    def __init__(self, product_id: int, size_label: str):
        self.product_id = product_id
        self.size_label = size_label
        super().__init__(f"Size option '{size_label}' not found on product {product_id}")


class WarehouseNotFoundError(NotFoundError):
    """Warehouse name is not one of the known warehouses."""

    code: str = "WAREHOUSE_NOT_FOUND"

    def __init__(self, warehouse: str):
        self.warehouse = warehouse
        super().__init__(f"Unknown warehouse: {warehouse}")


# Concurrency-related exceptions


class ConcurrencyError(StockKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class OptimisticLockError(ConcurrencyError):
    """Optimistic locking conflict detected."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"Optimistic lock conflict on {entity_type} {entity_id}: "
            "entity was modified by another writer"
        )
