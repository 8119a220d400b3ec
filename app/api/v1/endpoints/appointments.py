"""Appointment endpoints."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Query, status

from app.dependencies import AppointmentServiceDep, CurrentActor
from app.schemas.appointments import (
    AppointmentCreate,
    AppointmentResponse,
    AppointmentWithDetailsResponse,
)
from app.services.authorization import Operation

router = APIRouter()


@router.get(
    "/available",
    response_model=list[str],
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List free slots for a date",
)
async def get_available_slots(
    current_actor: CurrentActor,
    service: AppointmentServiceDep,
    day: date = Query(..., alias="date"),
) -> list[str]:
    """
    List the free slots of a day.

    Authorized here rather than in the service, which has no actor for this read.

    Args:
        current_actor: Authenticated caller (patient or receptionist)
        service: Appointment service
        day: Date to inspect

    Returns:
        Free slot times as HH:MM, ascending
    """
    service.authorizer.require(Operation.VIEW_AVAILABILITY, current_actor)
    return await service.get_available_slots(day)


@router.get(
    "/",
    response_model=list[AppointmentWithDetailsResponse],
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List appointments for a date",
)
async def list_appointments_by_date(
    current_actor: CurrentActor,
    service: AppointmentServiceDep,
    day: date = Query(..., alias="date"),
) -> list[AppointmentWithDetailsResponse]:
    """List the day's booked appointments with patient details."""
    return await service.list_appointments_by_date(day, current_actor)


@router.get(
    "/patient/{patient_id}",
    response_model=list[AppointmentWithDetailsResponse],
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List a patient's appointments",
)
async def list_appointments_by_patient(
    patient_id: UUID,
    current_actor: CurrentActor,
    service: AppointmentServiceDep,
) -> list[AppointmentWithDetailsResponse]:
    """List a patient's appointments, newest first."""
    return await service.list_appointments_by_patient(patient_id, current_actor)


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: UUID,
    current_actor: CurrentActor,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """
    Get a specific appointment by ID.

    Raises:
        NotFoundException: If appointment not found or cancelled
    """
    return await service.get_appointment(appointment_id, current_actor)


@router.post(
    "/",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Appointments"],
    summary="Book an appointment",
)
async def book_appointment(
    data: AppointmentCreate,
    current_actor: CurrentActor,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """
    Book a slot for a patient.

    Args:
        data: Patient, date and time
        current_actor: Patient booking for themselves, or a receptionist
        service: Appointment service

    Returns:
        Created appointment
    """
    return await service.book_appointment(data, current_actor)


@router.post(
    "/{appointment_id}/no-show",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Mark appointment as no-show",
)
async def mark_no_show(
    appointment_id: UUID,
    current_actor: CurrentActor,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """Mark an appointment as missed. Receptionists only."""
    return await service.mark_no_show(appointment_id, current_actor)


@router.delete(
    "/{appointment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Appointments"],
    summary="Cancel appointment",
)
async def cancel_appointment(
    appointment_id: UUID,
    current_actor: CurrentActor,
    service: AppointmentServiceDep,
) -> None:
    """
    Cancel an appointment that has not been completed.

    Raises:
        BadRequestException: If the appointment is completed
    """
    await service.cancel_appointment(appointment_id, current_actor)
