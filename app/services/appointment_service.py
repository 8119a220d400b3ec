"""Appointment service for business logic."""

from datetime import date, time
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.clock import Clock, SystemClock
from app.core.redis_client import CacheManager
from app.models.appointments import appointments
from app.models.users import users
from app.schemas.appointments import (
    AppointmentCreate,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentWithDetailsResponse,
)
from app.schemas.users import Actor
from app.schemas.visits import VisitCreate, VisitResponse, VisitUpdate, VisitWithDetailsResponse
from app.services.appointment_lifecycle import AppointmentLifecycle
from app.services.authorization import BookingAuthorizer, Operation
from app.services.slot_calendar import OfficeHours, SlotCalendar
from app.services.user_service import UserService


def to_appointment_response(row: dict[str, Any]) -> AppointmentResponse:
    return AppointmentResponse(
        id=row["id"],
        patient_id=row["patient_id"],
        date=row["appointment_date"],
        time=row["appointment_time"],
        status=AppointmentStatus(row["status"]),
    )


def _details_query():
    return select(
        appointments,
        users.c.first_name,
        users.c.last_name,
        users.c.phone_number,
    ).select_from(appointments.join(users, appointments.c.patient_id == users.c.id))


def _to_details_response(row: Any) -> AppointmentWithDetailsResponse:
    return AppointmentWithDetailsResponse(
        id=row["id"],
        patient_id=row["patient_id"],
        date=row["appointment_date"],
        time=row["appointment_time"],
        status=AppointmentStatus(row["status"]),
        patient_first_name=row["first_name"],
        patient_last_name=row["last_name"],
        patient_phone_number=row["phone_number"],
    )


class AppointmentService:
    """Entry point for every scheduling operation."""

    def __init__(
        self,
        db: AsyncSession,
        cache_manager: CacheManager | None = None,
        clock: Clock | None = None,
        hours: OfficeHours | None = None,
        reject_elapsed_same_day_slots: bool | None = None,
    ):
        """Initialize service with database session and collaborators."""
        self.db = db
        self.calendar = SlotCalendar(hours or OfficeHours.from_settings(settings))
        self.authorizer = BookingAuthorizer()
        self.lifecycle = AppointmentLifecycle(
            db,
            calendar=self.calendar,
            authorizer=self.authorizer,
            user_service=UserService(cache_manager),
            clock=clock or SystemClock(),
            reject_elapsed_same_day_slots=(
                settings.reject_elapsed_same_day_slots
                if reject_elapsed_same_day_slots is None
                else reject_elapsed_same_day_slots
            ),
        )

    async def get_available_slots(self, day: date) -> list[str]:
        """
        Free slots on a date.

        Args:
            day: Date to inspect

        Returns:
            Ascending list of HH:MM strings
        """
        slots: list[time] = await self.lifecycle.availability.available_slots(day)
        return [slot.strftime("%H:%M") for slot in slots]

    async def book_appointment(self, data: AppointmentCreate, actor: Actor) -> AppointmentResponse:
        """
        Book an appointment.

        Args:
            data: Patient, date and time to book
            actor: Caller

        Returns:
            Created appointment
        """
        row = await self.lifecycle.book(data.patient_id, data.date, data.time, actor)
        return to_appointment_response(row)

    async def cancel_appointment(self, appointment_id: UUID, actor: Actor) -> None:
        """Cancel an appointment; it is no longer retrievable afterwards."""
        await self.lifecycle.cancel(appointment_id, actor)

    async def mark_no_show(self, appointment_id: UUID, actor: Actor) -> AppointmentResponse:
        """Mark an appointment as missed by the patient."""
        row = await self.lifecycle.mark_no_show(appointment_id, actor)
        return to_appointment_response(row)

    async def complete_visit(self, data: VisitCreate, actor: Actor) -> VisitResponse:
        """
        Complete an appointment and record its visit.

        Args:
            data: Appointment to complete and the visit notes
            actor: Doctor completing the visit

        Returns:
            Created visit
        """
        return await self.lifecycle.complete(data.appointment_id, actor, data.notes)

    async def update_visit_notes(
        self,
        visit_id: UUID,
        data: VisitUpdate,
        actor: Actor,
    ) -> VisitResponse:
        """Amend the notes of an existing visit."""
        self.authorizer.require(Operation.UPDATE_VISIT_NOTES, actor)
        return await self.lifecycle.visit_recorder.update_notes(visit_id, data.notes)

    async def get_appointment(self, appointment_id: UUID, actor: Actor) -> AppointmentResponse:
        """
        Get appointment by ID.

        Raises:
            NotFoundException: If appointment not found or cancelled
            ForbiddenException: If a patient asks for someone else's appointment
        """
        row = await self.lifecycle.load(appointment_id)
        self.authorizer.require(Operation.VIEW_APPOINTMENT, actor, row["patient_id"])
        return to_appointment_response(row)

    async def list_appointments_by_date(
        self,
        day: date,
        actor: Actor,
    ) -> list[AppointmentWithDetailsResponse]:
        """Appointments holding a slot on the date, by time."""
        self.authorizer.require(Operation.LIST_APPOINTMENTS_BY_DATE, actor)

        stmt = (
            _details_query()
            .where(
                appointments.c.appointment_date == day,
                appointments.c.status != AppointmentStatus.CANCELLED.value,
            )
            .order_by(appointments.c.appointment_time.asc())
        )
        result = await self.db.execute(stmt)
        return [_to_details_response(row) for row in result.mappings()]

    async def list_appointments_by_patient(
        self,
        patient_id: UUID,
        actor: Actor,
    ) -> list[AppointmentWithDetailsResponse]:
        """A patient's appointments, newest first."""
        self.authorizer.require(Operation.LIST_APPOINTMENTS_BY_PATIENT, actor, patient_id)

        stmt = (
            _details_query()
            .where(
                appointments.c.patient_id == patient_id,
                appointments.c.status != AppointmentStatus.CANCELLED.value,
            )
            .order_by(
                appointments.c.appointment_date.desc(),
                appointments.c.appointment_time.desc(),
            )
        )
        result = await self.db.execute(stmt)
        return [_to_details_response(row) for row in result.mappings()]

    async def list_visits_by_patient(
        self,
        patient_id: UUID,
        actor: Actor,
    ) -> list[VisitWithDetailsResponse]:
        """A patient's visits, newest first."""
        self.authorizer.require(Operation.LIST_VISITS_BY_PATIENT, actor, patient_id)
        return await self.lifecycle.visit_recorder.list_by_patient(patient_id)
