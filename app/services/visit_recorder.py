"""Visit creation tied to an appointment reaching completed."""

from typing import Any
from uuid import UUID, uuid4

import structlog
from sqlalchemy import exists, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock
from app.core.exceptions import ConflictException, NotFoundException
from app.models.appointments import appointments
from app.models.visits import visits
from app.schemas.appointments import AppointmentStatus
from app.schemas.visits import VisitResponse, VisitWithDetailsResponse

logger = structlog.get_logger()


class VisitRecorder:
    """Writes a visit and the appointment's completed status as one unit."""

    def __init__(self, db: AsyncSession, clock: Clock):
        self.db = db
        self.clock = clock

    async def visit_exists(self, appointment_id: UUID) -> bool:
        """Whether a visit has been recorded for the appointment."""
        stmt = select(exists().where(visits.c.appointment_id == appointment_id))
        result = await self.db.execute(stmt)
        return bool(result.scalar())

    async def record_completion(
        self,
        appointment: dict[str, Any],
        doctor_id: UUID,
        notes: str | None,
    ) -> VisitResponse:
        """
        Complete an appointment and create its visit.

        The appointment row is only moved to completed if it still holds the
        status it was read with. Either both writes commit or neither does.

        Args:
            appointment: Appointment row as read by the caller
            doctor_id: Doctor performing the completion
            notes: Clinical notes

        Returns:
            The created visit

        Raises:
            ConflictException: If a visit already exists or the appointment changed
        """
        appointment_id = appointment["id"]
        now = self.clock.now()

        try:
            if await self.visit_exists(appointment_id):
                raise ConflictException(f"Visit already exists for appointment {appointment_id}")

            visit_result = await self.db.execute(
                visits.insert()
                .values(
                    id=uuid4(),
                    appointment_id=appointment_id,
                    completed_by_doctor_id=doctor_id,
                    notes=notes,
                    completed_at=now,
                    updated_at=now,
                )
                .returning(visits)
            )
            visit_row = visit_result.mappings().first()

            status_result = await self.db.execute(
                update(appointments)
                .where(
                    appointments.c.id == appointment_id,
                    appointments.c.status == appointment["status"],
                )
                .values(status=AppointmentStatus.COMPLETED.value, updated_at=now)
                .returning(appointments.c.id)
            )
            if status_result.first() is None:
                raise ConflictException(
                    f"Appointment {appointment_id} was modified concurrently; retry the request"
                )

            await self.db.commit()
        except ConflictException:
            await self.db.rollback()
            raise
        except IntegrityError:
            await self.db.rollback()
            raise ConflictException(
                f"Visit already exists for appointment {appointment_id}"
            ) from None

        visit = VisitResponse.model_validate(dict(visit_row))
        logger.info(
            "visit_completed",
            appointment_id=str(appointment_id),
            visit_id=str(visit.id),
            doctor_id=str(doctor_id),
            completed_at=now.isoformat(),
        )
        return visit

    async def update_notes(self, visit_id: UUID, notes: str | None) -> VisitResponse:
        """Replace a visit's notes. Appointment status is not consulted."""
        result = await self.db.execute(
            update(visits)
            .where(visits.c.id == visit_id)
            .values(notes=notes, updated_at=self.clock.now())
            .returning(visits)
        )
        row = result.mappings().first()

        if not row:
            await self.db.rollback()
            raise NotFoundException(f"Visit not found with ID: {visit_id}")

        await self.db.commit()
        logger.info("visit_notes_updated", visit_id=str(visit_id))
        return VisitResponse.model_validate(dict(row))

    async def list_by_patient(self, patient_id: UUID) -> list[VisitWithDetailsResponse]:
        """Visits of a patient, newest appointment first."""
        stmt = (
            select(
                visits,
                appointments.c.patient_id,
                appointments.c.appointment_date,
                appointments.c.appointment_time,
            )
            .select_from(visits.join(appointments, visits.c.appointment_id == appointments.c.id))
            .where(appointments.c.patient_id == patient_id)
            .order_by(
                appointments.c.appointment_date.desc(),
                appointments.c.appointment_time.desc(),
            )
        )
        result = await self.db.execute(stmt)
        return [VisitWithDetailsResponse.model_validate(dict(row)) for row in result.mappings()]
