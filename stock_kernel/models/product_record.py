"""
Module: stock_kernel.models.product_record
Responsibility: ORM persistence for catalog products.
Architecture position: Kernel > Models.  May import from db/base.py only.

One row per product.  ``document`` holds the persisted product layout
(``stock_kernel.domain.serialization.product_to_dict``) verbatim, including
the tri-modal stock representation and every field the allocation engine
does not interpret.  ``name`` and ``stock_model`` are denormalised copies
for querying only; the document is the source of truth.

Invariants enforced:
    - ``version`` is SQLAlchemy's ``version_id_col``: every UPDATE carries
      ``WHERE version = <read version>``, so a writer that read a stale row
      fails with StaleDataError instead of overwriting a concurrent change.

Failure modes:
    - sqlalchemy.orm.exc.StaleDataError on a lost update.  The catalog
      translates it to OptimisticLockError.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, BigInteger, DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import Base


class ProductRecord(Base):
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    stock_model: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    document: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<ProductRecord id={self.id} v{self.version} {self.stock_model}>"
