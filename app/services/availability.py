"""Free-slot resolution against the appointments table."""

from datetime import date, time

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.appointments import appointments
from app.schemas.appointments import AppointmentStatus
from app.services.slot_calendar import SlotCalendar


class AvailabilityResolver:
    """Subtracts occupied times from the slot grid for a given date."""

    def __init__(self, db: AsyncSession, calendar: SlotCalendar):
        self.db = db
        self.calendar = calendar

    async def occupied_times(self, day: date) -> set[time]:
        """Times held by every non-cancelled appointment on the date."""
        stmt = select(appointments.c.appointment_time).where(
            appointments.c.appointment_date == day,
            appointments.c.status != AppointmentStatus.CANCELLED.value,
        )
        result = await self.db.execute(stmt)
        return set(result.scalars().all())

    async def available_slots(self, day: date) -> list[time]:
        """Grid slots on the date that nobody holds, ascending."""
        taken = await self.occupied_times(day)
        return [slot for slot in self.calendar.slots() if slot not in taken]

    async def is_free(self, day: date, slot: time) -> bool:
        """Whether no non-cancelled appointment holds the slot on the date."""
        return slot not in await self.occupied_times(day)
