"""Visit endpoints."""

from uuid import UUID

from fastapi import APIRouter, status

from app.dependencies import AppointmentServiceDep, CurrentActor
from app.schemas.visits import VisitCreate, VisitResponse, VisitUpdate, VisitWithDetailsResponse

router = APIRouter()


@router.post(
    "/",
    response_model=VisitResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Visits"],
    summary="Complete an appointment",
)
async def complete_visit(
    data: VisitCreate,
    current_actor: CurrentActor,
    service: AppointmentServiceDep,
) -> VisitResponse:
    """
    Mark an appointment as completed and record the visit.

    Args:
        data: Appointment ID and notes
        current_actor: Doctor completing the visit
        service: Appointment service

    Returns:
        Created visit
    """
    return await service.complete_visit(data, current_actor)


@router.put(
    "/{visit_id}",
    response_model=VisitResponse,
    status_code=status.HTTP_200_OK,
    tags=["Visits"],
    summary="Update visit notes",
)
async def update_visit_notes(
    visit_id: UUID,
    data: VisitUpdate,
    current_actor: CurrentActor,
    service: AppointmentServiceDep,
) -> VisitResponse:
    """Replace the notes of a visit."""
    return await service.update_visit_notes(visit_id, data, current_actor)


@router.get(
    "/patient/{patient_id}",
    response_model=list[VisitWithDetailsResponse],
    status_code=status.HTTP_200_OK,
    tags=["Visits"],
    summary="List a patient's visits",
)
async def list_visits_by_patient(
    patient_id: UUID,
    current_actor: CurrentActor,
    service: AppointmentServiceDep,
) -> list[VisitWithDetailsResponse]:
    """List a patient's visits, newest first."""
    return await service.list_visits_by_patient(patient_id, current_actor)
