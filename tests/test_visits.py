"""Tests for visit completion and notes."""

from datetime import time, timedelta
from uuid import uuid4

import pytest
from sqlalchemy import select

from app.core.exceptions import ConflictException, ForbiddenException, NotFoundException
from app.models.appointments import appointments
from app.models.visits import visits
from app.schemas.appointments import AppointmentCreate, AppointmentStatus
from app.schemas.visits import VisitCreate, VisitUpdate


@pytest.fixture
def book(service, patient, tomorrow):
    async def _book(slot: time = time(10, 0), day=None):
        data = AppointmentCreate(patient_id=patient.id, date=day or tomorrow, time=slot)
        return await service.book_appointment(data, patient.as_actor())

    return _book


@pytest.mark.asyncio
async def test_doctor_completes_appointment(service, doctor, book, clock):
    """Test completion creates a visit and marks the appointment completed."""
    appointment = await book()

    visit = await service.complete_visit(
        VisitCreate(appointment_id=appointment.id, notes="Mild flu, rest advised"),
        doctor.as_actor(),
    )

    assert visit.appointment_id == appointment.id
    assert visit.completed_by_doctor_id == doctor.id
    assert visit.notes == "Mild flu, rest advised"
    assert visit.completed_at.replace(tzinfo=None) == clock.now().replace(tzinfo=None)

    stored = await service.get_appointment(appointment.id, doctor.as_actor())
    assert stored.status == AppointmentStatus.COMPLETED


@pytest.mark.asyncio
async def test_no_show_appointment_can_still_be_completed(service, doctor, receptionist, book):
    appointment = await book()
    await service.mark_no_show(appointment.id, receptionist.as_actor())

    visit = await service.complete_visit(
        VisitCreate(appointment_id=appointment.id), doctor.as_actor()
    )

    assert visit.notes is None
    stored = await service.get_appointment(appointment.id, doctor.as_actor())
    assert stored.status == AppointmentStatus.COMPLETED


@pytest.mark.asyncio
async def test_second_completion_conflicts(service, doctor, book, db_session):
    appointment = await book()
    data = VisitCreate(appointment_id=appointment.id, notes="first")
    await service.complete_visit(data, doctor.as_actor())

    with pytest.raises(ConflictException):
        await service.complete_visit(VisitCreate(appointment_id=appointment.id), doctor.as_actor())

    result = await db_session.execute(
        select(visits.c.notes).where(visits.c.appointment_id == appointment.id)
    )
    assert result.scalars().all() == ["first"]


@pytest.mark.asyncio
async def test_only_doctor_completes(service, book, patient, receptionist):
    appointment = await book()

    for actor in (patient.as_actor(), receptionist.as_actor()):
        with pytest.raises(ForbiddenException):
            await service.complete_visit(VisitCreate(appointment_id=appointment.id), actor)


@pytest.mark.asyncio
async def test_completing_cancelled_or_unknown_appointment(service, patient, doctor, book):
    appointment = await book()
    await service.cancel_appointment(appointment.id, patient.as_actor())

    with pytest.raises(NotFoundException):
        await service.complete_visit(VisitCreate(appointment_id=appointment.id), doctor.as_actor())
    with pytest.raises(NotFoundException):
        await service.complete_visit(VisitCreate(appointment_id=uuid4()), doctor.as_actor())


@pytest.mark.asyncio
async def test_failed_status_update_leaves_no_visit(service, doctor, book, db_session):
    """Test the visit insert is rolled back when the appointment changed underneath."""
    appointment = await book()
    stale = await service.lifecycle.load(appointment.id)
    stale["status"] = AppointmentStatus.NO_SHOW.value

    with pytest.raises(ConflictException):
        await service.lifecycle.visit_recorder.record_completion(stale, doctor.id, "lost")

    assert not await service.lifecycle.visit_recorder.visit_exists(appointment.id)
    result = await db_session.execute(
        select(appointments.c.status).where(appointments.c.id == appointment.id)
    )
    assert result.scalar() == AppointmentStatus.SCHEDULED.value


@pytest.mark.asyncio
async def test_doctor_updates_notes(service, doctor, book, clock):
    appointment = await book()
    visit = await service.complete_visit(
        VisitCreate(appointment_id=appointment.id, notes="initial"), doctor.as_actor()
    )
    clock.current = clock.now() + timedelta(hours=2)

    updated = await service.update_visit_notes(
        visit.id, VisitUpdate(notes="amended"), doctor.as_actor()
    )

    assert updated.id == visit.id
    assert updated.notes == "amended"
    # Completion time is not touched by later edits
    assert updated.completed_at == visit.completed_at


@pytest.mark.asyncio
async def test_notes_update_permissions_and_missing_visit(service, patient, doctor, book):
    appointment = await book()
    visit = await service.complete_visit(
        VisitCreate(appointment_id=appointment.id), doctor.as_actor()
    )

    with pytest.raises(ForbiddenException):
        await service.update_visit_notes(visit.id, VisitUpdate(notes="x"), patient.as_actor())
    with pytest.raises(NotFoundException):
        await service.update_visit_notes(uuid4(), VisitUpdate(notes="x"), doctor.as_actor())


@pytest.mark.asyncio
async def test_list_visits_by_patient(service, patient, other_patient, doctor, book, tomorrow):
    first = await book(time(9, 0))
    second = await book(time(9, 0), day=tomorrow + timedelta(days=7))
    await service.complete_visit(VisitCreate(appointment_id=first.id), doctor.as_actor())
    await service.complete_visit(VisitCreate(appointment_id=second.id), doctor.as_actor())

    listed = await service.list_visits_by_patient(patient.id, doctor.as_actor())

    assert [item.appointment_id for item in listed] == [second.id, first.id]
    assert listed[0].patient_id == patient.id
    assert listed[0].model_dump(mode="json")["appointment_time"] == "09:00"

    assert len(await service.list_visits_by_patient(patient.id, patient.as_actor())) == 2
    with pytest.raises(ForbiddenException):
        await service.list_visits_by_patient(patient.id, other_patient.as_actor())
