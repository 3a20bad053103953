"""
Structured JSON logging for the stock kernel.

Every record is one JSON object per line. Request-scoped fields (who is
acting, which product and warehouse are being touched) live in a single
context variable so they follow the call across threads and tasks, and
are stamped onto every record emitted while they are bound.

Usage:
    configure_logging(level=logging.INFO)
    logger = get_logger("services.stock_mutation")

    with LogContext.bind(product_id=7, warehouse="Lorenzo"):
        logger.info("stock_restocked", extra={"quantity": 12})
"""

__all__ = [
    "CONTEXT_FIELDS",
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any

CONTEXT_FIELDS: tuple[str, ...] = (
    "correlation_id",
    "actor_id",
    "product_id",
    "warehouse",
    "trace_id",
)

_EMPTY: Mapping[str, str] = MappingProxyType({})

_context: ContextVar[Mapping[str, str]] = ContextVar("stock_log_context", default=_EMPTY)


def _merged(fields: Mapping[str, Any]) -> Mapping[str, str]:
    unknown = set(fields) - set(CONTEXT_FIELDS)
    if unknown:
        raise ValueError(f"Unknown log context field(s): {', '.join(sorted(unknown))}")
    merged = dict(_context.get())
    merged.update({k: str(v) for k, v in fields.items() if v is not None})
    return MappingProxyType(merged)


class LogContext:
    """Request-scoped log fields, safe across threads and asyncio tasks."""

    @staticmethod
    def set(**fields: Any) -> None:
        """Add fields to the current context. None values are ignored."""
        _context.set(_merged(fields))

    @staticmethod
    def get_all() -> dict[str, str]:
        current = _context.get()
        return {name: current[name] for name in CONTEXT_FIELDS if name in current}

    @staticmethod
    def clear() -> None:
        _context.set(_EMPTY)

    @staticmethod
    @contextmanager
    def bind(**fields: Any) -> Iterator[type["LogContext"]]:
        """Bind fields for the duration of a ``with`` block, then restore."""
        token = _context.set(_merged(fields))
        try:
            yield LogContext
        finally:
            _context.reset(token)


# ---------------------------------------------------------------------------
# JSON Formatter
# ---------------------------------------------------------------------------

_RESERVED_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _encode(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    # Structured attributes carried by the kernel exceptions.
    for name, value in vars(exc).items():
        if not name.startswith("_") and name != "code":
            fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """Render a LogRecord as one JSON line.

    Context fields win over ``extra`` keys of the same name.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for key, value in vars(record).items():
            if key not in _RESERVED_ATTRS:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_encode)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

_ROOT_LOGGER = "stock_kernel"

_state_lock = threading.Lock()
_installed: logging.Handler | None = None


def get_logger(name: str) -> logging.Logger:
    """Return ``stock_kernel.<name>``."""
    return logging.getLogger(f"{_ROOT_LOGGER}.{name}")


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Install the JSON handler on the stock_kernel logger.

    Only the first call has any effect until ``reset_logging`` runs.
    """
    global _installed
    with _state_lock:
        if _installed is not None:
            return
        _installed = handler or logging.StreamHandler(stream or sys.stderr)

    _installed.setFormatter(StructuredFormatter())
    root = logging.getLogger(_ROOT_LOGGER)
    root.setLevel(level)
    root.propagate = False
    root.addHandler(_installed)


def reset_logging() -> None:
    """Remove the installed handler. Used by tests."""
    global _installed
    with _state_lock:
        _installed = None
    root = logging.getLogger(_ROOT_LOGGER)
    root.handlers.clear()
    root.setLevel(logging.WARNING)
    root.propagate = True
