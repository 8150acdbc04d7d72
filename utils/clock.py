"""
Injected time source for timestamps, due-date checks and degraded numbering.

Services never call datetime.now() directly. They receive a Clock so tests
can freeze or advance time and assert exact timestamps.
"""

import time
from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone


def now_utc() -> datetime:
    """Current time in UTC (timezone-aware)."""
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """
    Convert a datetime to UTC.

    Raises ValueError if datetime is naive (no timezone).
    """
    if dt.tzinfo is None:
        raise ValueError(
            "Cannot convert naive datetime to UTC. Datetime must be timezone-aware."
        )
    return dt.astimezone(timezone.utc)


def parse_iso(iso_string: str) -> datetime:
    """
    Parse ISO 8601 datetime string to UTC datetime.

    Raises ValueError if string has no timezone info.
    """
    dt = datetime.fromisoformat(iso_string)
    if dt.tzinfo is None:
        raise ValueError(
            "Cannot parse naive datetime string. "
            "Include timezone offset (e.g., 'Z' or '+00:00')."
        )
    return to_utc(dt)


class Clock(ABC):
    """Time source."""

    @abstractmethod
    def now(self) -> datetime:
        """Current time, timezone-aware UTC."""

    @abstractmethod
    def monotonic_ns(self) -> int:
        """Monotonic reading in nanoseconds."""

    def today(self) -> date:
        """Current calendar date in UTC."""
        return self.now().date()


class SystemClock(Clock):
    """Wall clock backed by the operating system."""

    def now(self) -> datetime:
        return now_utc()

    def monotonic_ns(self) -> int:
        return time.monotonic_ns()


class FrozenClock(Clock):
    """
    Clock that only moves when told to.

    Usage:
        clock = FrozenClock(datetime(2024, 3, 1, tzinfo=timezone.utc))
        clock.advance(days=1)
    """

    def __init__(self, start: datetime | None = None, monotonic_start_ns: int = 0):
        self._now = to_utc(start) if start is not None else now_utc()
        self._monotonic_ns = monotonic_start_ns

    def now(self) -> datetime:
        return self._now

    def monotonic_ns(self) -> int:
        return self._monotonic_ns

    def set(self, moment: datetime) -> None:
        self._now = to_utc(moment)

    def advance(self, **kwargs) -> datetime:
        """Move forward by a timedelta built from kwargs (days=, seconds=, ...)."""
        delta = timedelta(**kwargs)
        self._now = self._now + delta
        self._monotonic_ns += int(delta.total_seconds() * 1_000_000_000)
        return self._now
