"""Clock abstraction used for every time-based decision in the service."""

from abc import ABC, abstractmethod
from datetime import UTC, datetime, timedelta


def ensure_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime.

    Some drivers (SQLite) hand back naive values for timezone-aware columns;
    those are stored as UTC, so the tzinfo is simply attached.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def whole_seconds_between(start: datetime, end: datetime) -> int:
    """Whole seconds from start to end, truncated toward zero."""
    return int((ensure_utc(end) - ensure_utc(start)).total_seconds())


class Clock(ABC):
    """Source of the current time."""

    @abstractmethod
    def now(self) -> datetime:
        """Return the current time as an aware UTC datetime."""
        pass


class SystemClock(Clock):
    """Wall clock."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class FrozenClock(Clock):
    """Manually advanced clock for tests and replays."""

    def __init__(self, start: datetime | None = None):
        self._now = ensure_utc(start) if start else datetime(2026, 1, 1, 9, 0, tzinfo=UTC)

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float = 0, **kwargs: float) -> datetime:
        """Move the clock forward and return the new time."""
        self._now = self._now + timedelta(seconds=seconds, **kwargs)
        return self._now
