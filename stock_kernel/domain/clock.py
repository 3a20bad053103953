"""
Injectable time source.

Services stamp batches, corrections and audit entries with ``clock.now()``;
the engines take those timestamps as arguments and never read time
themselves. Every value returned is timezone-aware UTC.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


def ensure_utc(value: datetime) -> datetime:
    """Naive values are taken as UTC; aware values are converted to it."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Clock(ABC):

    @abstractmethod
    def now(self) -> datetime:
        """Current time, timezone-aware UTC."""


class SystemClock(Clock):
    """Wall-clock time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock for tests and replays.

    Returns ``start`` until moved with ``advance``/``set_time``. With
    ``step`` set, every ``now()`` call moves the clock forward by that much
    after answering, so successive mutations get distinct receipt times.
    """

    def __init__(self, start: datetime | None = None, step: timedelta | None = None):
        start = start or datetime(2024, 12, 9, 9, 0, tzinfo=timezone.utc)
        if start.tzinfo is None:
            raise ValueError("DeterministicClock needs a timezone-aware start")
        self._current = start.astimezone(timezone.utc)
        self._step = step

    def now(self) -> datetime:
        current = self._current
        if self._step:
            self._current += self._step
        return current

    def set_time(self, at: datetime) -> None:
        if at.tzinfo is None:
            raise ValueError("DeterministicClock needs a timezone-aware time")
        self._current = at.astimezone(timezone.utc)

    def advance(self, **delta: float) -> datetime:
        """Move forward, e.g. ``advance(days=1)``. Returns the new time."""
        self._current += timedelta(**delta)
        return self._current
