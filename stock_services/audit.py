"""
Audit log entries for inventory changes.

The audit log store itself lives outside this package; ``AuditLogSink`` is
the one method it must offer. ``InMemoryAuditLog`` backs tests and
tooling.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable
from uuid import uuid4

INVENTORY_UPDATED = "inventory_updated"


@dataclass(frozen=True, slots=True)
class Actor:
    """The admin user who performed an action."""

    id: str
    email: str
    role: str
    name: str | None = None


@dataclass(frozen=True, slots=True)
class AuditTarget:
    type: str
    id: str
    name: str


@dataclass(frozen=True, slots=True)
class FieldChange:
    field: str
    old_value: str
    new_value: str


@dataclass(frozen=True, slots=True)
class AuditEntry:
    action_type: str
    performed_by: Actor
    target_entity: AuditTarget
    timestamp: datetime
    changes: tuple[FieldChange, ...] = ()
    metadata: Mapping[str, Any] = field(default_factory=dict)
    entry_id: str = field(default_factory=lambda: str(uuid4()))


@runtime_checkable
class AuditLogSink(Protocol):
    def add_audit_log(self, entry: AuditEntry) -> None: ...


class InMemoryAuditLog:
    """Append-only list of audit entries."""

    def __init__(self) -> None:
        self._entries: list[AuditEntry] = []

    def add_audit_log(self, entry: AuditEntry) -> None:
        self._entries.append(entry)

    @property
    def entries(self) -> tuple[AuditEntry, ...]:
        return tuple(self._entries)

    def entries_for(self, target_id: str) -> list[AuditEntry]:
        return [e for e in self._entries if e.target_entity.id == target_id]

    def __len__(self) -> int:
        return len(self._entries)
