"""
stock_services.catalog -- Product catalog persistence with optimistic versions.

Responsibility:
    Read and write whole products in their persisted layout. Every product
    carries a version counter; a write states the version it was based on
    and fails if another writer got there first.

Architecture position:
    Services -- the persistence boundary. ``InMemoryProductCatalog`` backs
    tests and tooling; ``SqlProductCatalog`` stores one ``products`` row per
    product through SQLAlchemy.

Invariants enforced:
    - Documents round-trip through ``product_to_dict``/``product_from_dict``
      unchanged, including fields the engine does not interpret.
    - Compare-and-swap: ``save_product`` and ``save_products`` only apply
      when every expected version matches. ``save_products`` is all or
      nothing.

Failure modes:
    - ProductNotFoundError for an unknown id.
    - OptimisticLockError when an expected version is stale.
    - ValidationError from ``add_product`` when the id is already taken.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace
from typing import Any, Protocol, runtime_checkable

from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.orm.exc import StaleDataError

from stock_kernel.db.engine import session_scope
from stock_kernel.domain.catalog import Product
from stock_kernel.domain.serialization import product_from_dict, product_to_dict
from stock_kernel.exceptions import (
    OptimisticLockError,
    ProductNotFoundError,
    ValidationError,
)
from stock_kernel.logging_config import get_logger
from stock_kernel.models.product_record import ProductRecord

logger = get_logger("services.catalog")


@runtime_checkable
class ProductCatalog(Protocol):
    """Read/write access to the product catalog."""

    def get_products(self) -> list[Product]: ...

    def get_product(self, product_id: int) -> Product: ...

    def get_version(self, product_id: int) -> int: ...

    def save_product(self, product: Product, expected_version: int) -> int: ...

    def save_products(
        self,
        products: Sequence[Product],
        expected_versions: Mapping[int, int],
    ) -> dict[int, int]: ...

    def add_product(self, product: Product) -> Product: ...


def _assigned(product: Product, existing_ids: Iterable[int]) -> Product:
    """Give an id-0 product the next free id."""
    if product.id:
        return product
    return replace(product, id=max(existing_ids, default=0) + 1)


class InMemoryProductCatalog:
    """Catalog holding deep-copied documents in a dict."""

    def __init__(self, products: Iterable[Product] = ()):
        self._documents: dict[int, dict[str, Any]] = {}
        self._versions: dict[int, int] = {}
        for product in products:
            self.add_product(product)

    @classmethod
    def from_documents(cls, documents: Iterable[Mapping[str, Any]]) -> InMemoryProductCatalog:
        catalog = cls()
        for index, document in enumerate(documents):
            catalog.add_product(product_from_dict(document, f"products[{index}]"))
        return catalog

    def documents(self) -> list[dict[str, Any]]:
        """Stored documents, copied."""
        return [copy.deepcopy(self._documents[pid]) for pid in sorted(self._documents)]

    def get_products(self) -> list[Product]:
        return [product_from_dict(self._documents[pid]) for pid in sorted(self._documents)]

    def get_product(self, product_id: int) -> Product:
        document = self._documents.get(product_id)
        if document is None:
            raise ProductNotFoundError(product_id)
        return product_from_dict(document)

    def get_version(self, product_id: int) -> int:
        if product_id not in self._versions:
            raise ProductNotFoundError(product_id)
        return self._versions[product_id]

    def _check_version(self, product_id: int, expected_version: int) -> None:
        current = self.get_version(product_id)
        if current != expected_version:
            logger.warning("catalog_version_conflict", extra={
                "product_id": product_id,
                "expected_version": expected_version,
                "current_version": current,
            })
            raise OptimisticLockError("Product", str(product_id))

    def save_product(self, product: Product, expected_version: int) -> int:
        return self.save_products([product], {product.id: expected_version})[product.id]

    def save_products(
        self,
        products: Sequence[Product],
        expected_versions: Mapping[int, int],
    ) -> dict[int, int]:
        for product in products:
            self._check_version(product.id, expected_versions.get(product.id, -1))
        saved: dict[int, int] = {}
        for product in products:
            self._documents[product.id] = product_to_dict(product)
            self._versions[product.id] += 1
            saved[product.id] = self._versions[product.id]
        return saved

    def add_product(self, product: Product) -> Product:
        product = _assigned(product, self._documents)
        if product.id in self._documents:
            raise ValidationError(f"Product ID {product.id} already exists")
        self._documents[product.id] = product_to_dict(product)
        self._versions[product.id] = 1
        return product


class SqlProductCatalog:
    """
    Catalog stored in the ``products`` table.

    Each call runs in its own transaction from ``session_factory``. The
    ``version`` column is SQLAlchemy's ``version_id_col``, so the UPDATE is
    conditional on the version that was read and a concurrent writer
    surfaces as StaleDataError, translated to OptimisticLockError.
    """

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def get_products(self) -> list[Product]:
        with session_scope(self._session_factory) as session:
            records = session.scalars(select(ProductRecord).order_by(ProductRecord.id)).all()
            return [product_from_dict(r.document, f"products[{r.id}]") for r in records]

    def get_product(self, product_id: int) -> Product:
        with session_scope(self._session_factory) as session:
            record = session.get(ProductRecord, product_id)
            if record is None:
                raise ProductNotFoundError(product_id)
            return product_from_dict(record.document)

    def get_version(self, product_id: int) -> int:
        with session_scope(self._session_factory) as session:
            version = session.scalar(
                select(ProductRecord.version).where(ProductRecord.id == product_id)
            )
            if version is None:
                raise ProductNotFoundError(product_id)
            return version

    def save_product(self, product: Product, expected_version: int) -> int:
        return self.save_products([product], {product.id: expected_version})[product.id]

    def save_products(
        self,
        products: Sequence[Product],
        expected_versions: Mapping[int, int],
    ) -> dict[int, int]:
        saved: dict[int, int] = {}
        conflict: int | None = None
        try:
            with session_scope(self._session_factory) as session:
                records: list[ProductRecord] = []
                for product in products:
                    record = session.get(ProductRecord, product.id)
                    if record is None:
                        raise ProductNotFoundError(product.id)
                    if record.version != expected_versions.get(product.id, -1):
                        conflict = product.id
                        raise OptimisticLockError("Product", str(product.id))
                    record.document = product_to_dict(product)
                    flag_modified(record, "document")
                    record.name = product.name
                    record.stock_model = product.stock_model_kind
                    records.append(record)
                session.flush()
                saved = {r.id: r.version for r in records}
        except StaleDataError:
            logger.warning("catalog_stale_write", extra={
                "product_ids": [p.id for p in products],
            })
            raise OptimisticLockError(
                "Product", ",".join(str(p.id) for p in products),
            ) from None
        except OptimisticLockError:
            logger.warning("catalog_version_conflict", extra={
                "product_id": conflict,
                "expected_version": expected_versions.get(conflict or 0),
            })
            raise
        return saved

    def add_product(self, product: Product) -> Product:
        with session_scope(self._session_factory) as session:
            if not product.id:
                highest = session.scalar(select(func.max(ProductRecord.id))) or 0
                product = _assigned(product, [highest])
            elif session.get(ProductRecord, product.id) is not None:
                raise ValidationError(f"Product ID {product.id} already exists")
            session.add(ProductRecord(
                id=product.id,
                name=product.name,
                stock_model=product.stock_model_kind,
                document=product_to_dict(product),
            ))
        return product
