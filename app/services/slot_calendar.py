"""Bookable time grid for the office's daily window."""

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from app.config import Settings


def _offset(t: time, origin: time) -> timedelta:
    """Distance from origin to t within a single day."""
    anchor = date.min
    return datetime.combine(anchor, t) - datetime.combine(anchor, origin)


def generate_slots(office_start: time, office_end: time, slot_duration: timedelta) -> Iterator[time]:
    """
    Yield every slot start from office_start up to, excluding, office_end.

    Args:
        office_start: First bookable time of day
        office_end: End of the office window (exclusive)
        slot_duration: Grid granularity

    Returns:
        Iterator of slot times in ascending order
    """
    if slot_duration <= timedelta(0):
        raise ValueError("slot_duration must be positive")

    window = _offset(office_end, office_start)
    step = timedelta(0)
    while step < window:
        yield (datetime.combine(date.min, office_start) + step).time()
        step += slot_duration


@dataclass(frozen=True)
class OfficeHours:
    """Daily office window and slot granularity."""

    start: time
    end: time
    slot_duration: timedelta

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValueError("Office end must be later than office start")
        if self.slot_duration <= timedelta(0):
            raise ValueError("Slot duration must be positive")

    @classmethod
    def from_settings(cls, settings: Settings) -> "OfficeHours":
        """Build office hours from application settings."""
        return cls(
            start=settings.office_start,
            end=settings.office_end,
            slot_duration=timedelta(minutes=settings.slot_duration_minutes),
        )


class SlotCalendar:
    """Pure slot grid over a fixed set of office hours."""

    def __init__(self, hours: OfficeHours):
        self.hours = hours

    def slots(self) -> list[time]:
        """All slots of a working day, ascending."""
        return list(generate_slots(self.hours.start, self.hours.end, self.hours.slot_duration))

    def is_valid_slot(self, t: time) -> bool:
        """True if t lies in the office window and on the slot grid."""
        if t.tzinfo is not None:
            t = t.replace(tzinfo=None)
        if t < self.hours.start or t >= self.hours.end:
            return False
        return _offset(t, self.hours.start) % self.hours.slot_duration == timedelta(0)

    def describe(self) -> str:
        """Human-readable grid description used in error messages."""
        minutes = int(self.hours.slot_duration.total_seconds() // 60)
        return (
            f"{minutes}-minute interval between "
            f"{self.hours.start.strftime('%H:%M')} and {self.hours.end.strftime('%H:%M')}"
        )
