"""
Module: stock_kernel.db.base
Responsibility: Declarative base class for all SQLAlchemy ORM records.  Provides
    the type annotation map for consistent column types.
Architecture position: Kernel > DB.  This is the lowest-level import target
    within the kernel.  ALL record files import from here.  This module MUST NOT
    import from models/, domain/, or outer layers.

Invariants enforced:
    - Timestamps are always timezone-aware (DateTime(timezone=True)).
    - Python int maps to BigInteger so product ids and sequences never overflow.
"""

from datetime import datetime
from typing import Any, ClassVar

from sqlalchemy import JSON, BigInteger, DateTime
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy records.

    Guarantees:
        - datetime maps to DateTime(timezone=True) -- always timezone-aware.
        - int maps to BigInteger.
        - dict maps to JSON (portable across PostgreSQL and SQLite).
    """

    type_annotation_map: ClassVar[dict] = {
        datetime: DateTime(timezone=True),
        int: BigInteger,
        dict[str, Any]: JSON,
    }
