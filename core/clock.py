"""
Core Module - Report Clock.

============================================================
PURPOSE
============================================================
Single source of "now" for report aging and model timestamps.

Scoring reads report age through now_utc(); tests freeze it with
use_mock_clock() instead of patching datetime. Every value handed
out is timezone-aware UTC.

============================================================
"""

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Iterator, Optional


def ensure_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes (database rows are stored naive)."""
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt


# ============================================================
# CLOCK IMPLEMENTATIONS
# ============================================================

class ClockProtocol(ABC):
    """Anything that can say what time it is, in UTC."""

    @abstractmethod
    def now(self) -> datetime:
        ...

    def age_of(self, moment: datetime) -> timedelta:
        """Time elapsed since `moment` according to this clock."""
        return self.now() - ensure_utc(moment)


class SystemClock(ClockProtocol):
    """Wall-clock time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class MockClock(ClockProtocol):
    """
    Frozen clock that only moves when told to.

    Used by tests that assert on report age buckets or on the
    trained_at stamp of a model snapshot.
    """

    def __init__(self, start: Optional[datetime] = None):
        self._mutex = threading.Lock()
        self._current = ensure_utc(start or datetime.now(timezone.utc))

    def now(self) -> datetime:
        with self._mutex:
            return self._current

    def set_time(self, moment: datetime) -> None:
        with self._mutex:
            self._current = ensure_utc(moment)

    def advance(self, seconds: float = 0, **delta) -> None:
        """Move forward; extra keywords go to timedelta (days=, hours=)."""
        step = timedelta(seconds=seconds, **delta)
        with self._mutex:
            self._current += step


# ============================================================
# ACTIVE CLOCK
# ============================================================

_active: ClockProtocol = SystemClock()
_active_guard = threading.Lock()


def get_clock() -> ClockProtocol:
    with _active_guard:
        return _active


def set_clock(clock: ClockProtocol) -> None:
    global _active
    with _active_guard:
        _active = clock


@contextmanager
def use_mock_clock(start: Optional[datetime] = None) -> Iterator[MockClock]:
    """Install a MockClock for the duration of the block."""
    previous = get_clock()
    frozen = MockClock(start)
    set_clock(frozen)
    try:
        yield frozen
    finally:
        set_clock(previous)


def now_utc() -> datetime:
    """Current UTC time from the active clock."""
    return get_clock().now()


__all__ = [
    "ClockProtocol",
    "SystemClock",
    "MockClock",
    "get_clock",
    "set_clock",
    "use_mock_clock",
    "now_utc",
    "ensure_utc",
]
