"""Clock abstraction for current date and time."""

from datetime import UTC, date, datetime
from typing import Protocol


class Clock(Protocol):
    """Source of the current time."""

    def now(self) -> datetime: ...


class SystemClock:
    """Clock backed by the system time in UTC."""

    def now(self) -> datetime:
        return datetime.now(UTC)


def today(clock: Clock) -> date:
    """Current calendar date according to the clock."""
    return clock.now().date()
