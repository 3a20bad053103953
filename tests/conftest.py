"""
Pytest fixtures for the stock allocation test suite.

Provides:
- Structured logging fixtures (JSON capture)
- A deterministic clock
- Sample products for the three stock shapes
- In-memory and SQL-backed product catalogs

Environment Variables:
- DATABASE_URL: database for the SQL catalog tests. Defaults to an in-memory
  SQLite database, so no server is needed.
"""

import json
import logging
import os
from io import StringIO

import pytest

from stock_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from stock_kernel.domain.catalog import Product
from stock_kernel.domain.clock import DeterministicClock
from stock_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from stock_services.audit import Actor, InMemoryAuditLog
from stock_services.batch_ids import BatchIdSequence
from stock_services.catalog import InMemoryProductCatalog, SqlProductCatalog
from stock_services.inventory_admin_service import InventoryAdminService
from stock_services.stock_mutation_service import StockMutationService
from tests.factories import (
    T0,
    flat_product,
    legacy_product,
    size_option,
    variant,
    variant_product,
    ws,
)

DEFAULT_DATABASE_URL = "sqlite:///:memory:"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture stock_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, mutations):
            mutations.restock(...)
            logs = captured_logs()
            assert any(r["message"] == "warehouse_stock_restocked" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("stock_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Sample products
# =============================================================================


@pytest.fixture
def scenario_product() -> Product:
    """Product 1 with variant v1: Lorenzo 10/2, Oroquieta 5/0."""
    return variant_product(
        1,
        variant("v1", ws("Lorenzo", 10, 2), ws("Oroquieta", 5, 0), color="Red"),
    )


@pytest.fixture
def sample_products(scenario_product) -> list[Product]:
    return [
        scenario_product,
        legacy_product(
            2,
            size_option("Small", ws("Lorenzo", 4, 1), ws("Oroquieta", 2, 0)),
            size_option("Large", ws("Lorenzo", 3, 0)),
        ),
        flat_product(3, ws("Lorenzo", 20, 5), ws("Oroquieta", 0, 0)),
    ]


# =============================================================================
# Service fixtures
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(T0)


@pytest.fixture
def catalog(sample_products) -> InMemoryProductCatalog:
    return InMemoryProductCatalog(sample_products)


@pytest.fixture
def batch_ids() -> BatchIdSequence:
    return BatchIdSequence()


@pytest.fixture
def mutations(catalog, deterministic_clock, batch_ids) -> StockMutationService:
    return StockMutationService(catalog, clock=deterministic_clock, batch_ids=batch_ids)


@pytest.fixture
def audit_log() -> InMemoryAuditLog:
    return InMemoryAuditLog()


@pytest.fixture
def admin_actor() -> Actor:
    return Actor(id="admin-1", email="admin@example.com", role="admin", name="Ana Admin")


@pytest.fixture
def admin_service(mutations, audit_log, deterministic_clock) -> InventoryAdminService:
    return InventoryAdminService(mutations, audit_log, deterministic_clock)


# =============================================================================
# Database fixtures
# =============================================================================


def get_database_url() -> str:
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


@pytest.fixture
def db_engine():
    """Fresh engine and schema per test."""
    reset_engine()
    engine = init_engine_from_url(get_database_url())
    drop_tables(engine)
    create_tables(engine)
    yield engine
    drop_tables(engine)
    reset_engine()


@pytest.fixture
def session_factory(db_engine):
    return get_session_factory()


@pytest.fixture
def sql_catalog(session_factory, sample_products) -> SqlProductCatalog:
    catalog = SqlProductCatalog(session_factory)
    for product in sample_products:
        catalog.add_product(product)
    return catalog
