"""Database layer - engine and declarative base."""

from stock_kernel.db.base import Base
from stock_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
    session_scope,
)

__all__ = [
    "Base",
    "create_tables",
    "drop_tables",
    "get_engine",
    "get_session_factory",
    "init_engine_from_url",
    "reset_engine",
    "session_scope",
]
