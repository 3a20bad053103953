"""ORM records for the stock kernel."""

from stock_kernel.models.product_record import ProductRecord

__all__ = ["ProductRecord"]
