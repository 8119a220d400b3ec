"""Appointment state machine and its guarded transitions."""

from datetime import date, time
from typing import Any
from uuid import UUID, uuid4

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock, today
from app.core.exceptions import (
    BadRequestException,
    ConflictException,
    NotFoundException,
)
from app.models.appointments import appointments
from app.schemas.appointments import AppointmentStatus
from app.schemas.users import Actor, Role
from app.schemas.visits import VisitResponse
from app.services.authorization import BookingAuthorizer, Operation
from app.services.availability import AvailabilityResolver
from app.services.slot_calendar import SlotCalendar
from app.services.user_service import UserService
from app.services.visit_recorder import VisitRecorder

logger = structlog.get_logger()

TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: frozenset(
        {
            AppointmentStatus.COMPLETED,
            AppointmentStatus.NO_SHOW,
            AppointmentStatus.CANCELLED,
        }
    ),
    # Re-marking a no-show is accepted as a no-op
    AppointmentStatus.NO_SHOW: frozenset(
        {
            AppointmentStatus.COMPLETED,
            AppointmentStatus.NO_SHOW,
            AppointmentStatus.CANCELLED,
        }
    ),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
}


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    """Whether the state machine allows moving from current to target."""
    return target in TRANSITIONS[current]


def ensure_transition(current: AppointmentStatus, target: AppointmentStatus) -> None:
    """Raise BadRequestException if current may not move to target."""
    if can_transition(current, target):
        return
    if current == AppointmentStatus.COMPLETED:
        raise BadRequestException(
            f"Cannot change a completed appointment to '{target.value}'"
        )
    raise BadRequestException(
        f"Cannot change appointment from '{current.value}' to '{target.value}'"
    )


class AppointmentLifecycle:
    """Book, cancel, mark no-show and complete appointments."""

    def __init__(
        self,
        db: AsyncSession,
        calendar: SlotCalendar,
        authorizer: BookingAuthorizer,
        user_service: UserService,
        clock: Clock,
        reject_elapsed_same_day_slots: bool = False,
    ):
        self.db = db
        self.calendar = calendar
        self.authorizer = authorizer
        self.user_service = user_service
        self.clock = clock
        self.reject_elapsed_same_day_slots = reject_elapsed_same_day_slots
        self.availability = AvailabilityResolver(db, calendar)
        self.visit_recorder = VisitRecorder(db, clock)

    async def load(self, appointment_id: UUID) -> dict[str, Any]:
        """
        Read an appointment by ID.

        Cancelled appointments are kept for history but read as absent.

        Raises:
            NotFoundException: If the appointment does not exist or was cancelled
        """
        stmt = select(appointments).where(
            appointments.c.id == appointment_id,
            appointments.c.status != AppointmentStatus.CANCELLED.value,
        )
        result = await self.db.execute(stmt)
        row = result.mappings().first()

        if not row:
            raise NotFoundException(f"Appointment not found with ID: {appointment_id}")

        return dict(row)

    def _check_not_in_past(self, day: date, slot: time) -> None:
        current_day = today(self.clock)
        if day < current_day:
            raise BadRequestException("Cannot book appointment in the past")
        if (
            self.reject_elapsed_same_day_slots
            and day == current_day
            and slot <= self.clock.now().time().replace(tzinfo=None)
        ):
            raise BadRequestException("Cannot book a time slot that has already started")

    async def book(self, patient_id: UUID, day: date, slot: time, actor: Actor) -> dict[str, Any]:
        """
        Create a scheduled appointment.

        Args:
            patient_id: Patient the appointment is for
            day: Appointment date
            slot: Appointment time, on the slot grid
            actor: Caller

        Returns:
            The created appointment row

        Raises:
            ForbiddenException: If the actor may not book for this patient
            NotFoundException: If the patient does not exist
            BadRequestException: If the target is not a patient or the slot is invalid
            ConflictException: If the slot is already taken
        """
        self.authorizer.require(Operation.BOOK, actor, patient_id)
        slot = slot.replace(tzinfo=None)

        patient = await self.user_service.get_user_by_id(self.db, patient_id)
        if patient is None:
            raise NotFoundException(f"Patient with ID {patient_id} not found")
        if patient.role != Role.PATIENT:
            raise BadRequestException(f"User with ID {patient_id} is not a patient")

        self._check_not_in_past(day, slot)

        if not self.calendar.is_valid_slot(slot):
            raise BadRequestException(f"Invalid time slot. Must be {self.calendar.describe()}")

        if not await self.availability.is_free(day, slot):
            logger.info("slot_conflict_detected", date=day.isoformat(), time=slot.isoformat())
            raise ConflictException(f"Time slot {slot.strftime('%H:%M')} on {day} is already booked")

        now = self.clock.now()
        stmt = (
            appointments.insert()
            .values(
                id=uuid4(),
                patient_id=patient_id,
                appointment_date=day,
                appointment_time=slot,
                status=AppointmentStatus.SCHEDULED.value,
                created_at=now,
                updated_at=now,
            )
            .returning(appointments)
        )

        try:
            result = await self.db.execute(stmt)
            row = result.mappings().first()
            await self.db.commit()
        except IntegrityError:
            # Another booking for the same slot committed first
            await self.db.rollback()
            logger.info("slot_conflict_detected", date=day.isoformat(), time=slot.isoformat())
            raise ConflictException(
                f"Time slot {slot.strftime('%H:%M')} on {day} is already booked"
            ) from None

        logger.info(
            "appointment_booked",
            appointment_id=str(row["id"]),
            patient_id=str(patient_id),
            date=day.isoformat(),
            time=slot.isoformat(),
            actor_id=str(actor.id),
        )
        return dict(row)

    async def _transition(
        self,
        appointment: dict[str, Any],
        target: AppointmentStatus,
        **values: Any,
    ) -> dict[str, Any]:
        """Apply a status change only if the row still has the status that was read."""
        stmt = (
            update(appointments)
            .where(
                appointments.c.id == appointment["id"],
                appointments.c.status == appointment["status"],
            )
            .values(status=target.value, updated_at=self.clock.now(), **values)
            .returning(appointments)
        )
        result = await self.db.execute(stmt)
        row = result.mappings().first()

        if not row:
            await self.db.rollback()
            raise ConflictException(
                f"Appointment {appointment['id']} was modified concurrently; retry the request"
            )

        await self.db.commit()
        return dict(row)

    async def cancel(self, appointment_id: UUID, actor: Actor) -> None:
        """
        Cancel an appointment that is not completed.

        Raises:
            NotFoundException: If the appointment does not exist
            ForbiddenException: If the actor may not cancel it
            BadRequestException: If the appointment is completed
            ConflictException: If the appointment changed concurrently
        """
        appointment = await self.load(appointment_id)
        self.authorizer.require(Operation.CANCEL, actor, appointment["patient_id"])
        ensure_transition(AppointmentStatus(appointment["status"]), AppointmentStatus.CANCELLED)

        await self._transition(
            appointment,
            AppointmentStatus.CANCELLED,
            cancelled_at=self.clock.now(),
        )
        logger.info(
            "appointment_cancelled",
            appointment_id=str(appointment_id),
            actor_id=str(actor.id),
            actor_role=actor.role.value,
        )

    async def mark_no_show(self, appointment_id: UUID, actor: Actor) -> dict[str, Any]:
        """Record that the patient did not attend."""
        appointment = await self.load(appointment_id)
        self.authorizer.require(Operation.MARK_NO_SHOW, actor, appointment["patient_id"])
        ensure_transition(AppointmentStatus(appointment["status"]), AppointmentStatus.NO_SHOW)

        updated = await self._transition(appointment, AppointmentStatus.NO_SHOW)
        logger.info("appointment_marked_no_show", appointment_id=str(appointment_id))
        return updated

    async def complete(
        self,
        appointment_id: UUID,
        actor: Actor,
        notes: str | None,
    ) -> VisitResponse:
        """
        Complete an appointment, producing its visit.

        Raises:
            NotFoundException: If the appointment does not exist
            ForbiddenException: If the actor is not a doctor
            ConflictException: If the appointment is already completed
        """
        appointment = await self.load(appointment_id)
        self.authorizer.require(Operation.COMPLETE, actor, appointment["patient_id"])

        current = AppointmentStatus(appointment["status"])
        if current == AppointmentStatus.COMPLETED:
            raise ConflictException(f"Visit already exists for appointment {appointment_id}")
        ensure_transition(current, AppointmentStatus.COMPLETED)

        return await self.visit_recorder.record_completion(appointment, actor.id, notes)
