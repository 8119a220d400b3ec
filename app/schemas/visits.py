"""Visit schemas for request/response validation."""

from datetime import date, datetime, time
from uuid import UUID

from pydantic import BaseModel, Field, field_serializer


class VisitCreate(BaseModel):
    """Schema for completing an appointment."""

    appointment_id: UUID
    notes: str | None = Field(None, max_length=5000)


class VisitUpdate(BaseModel):
    """Schema for amending visit notes."""

    notes: str | None = Field(None, max_length=5000)


class VisitResponse(BaseModel):
    """Schema for visit response."""

    id: UUID
    appointment_id: UUID
    notes: str | None = None
    completed_by_doctor_id: UUID
    completed_at: datetime

    model_config = {"from_attributes": True}


class VisitWithDetailsResponse(VisitResponse):
    """Visit with the slot of the appointment it came from."""

    patient_id: UUID
    appointment_date: date
    appointment_time: time

    @field_serializer("appointment_time")
    def serialize_appointment_time(self, value: time) -> str:
        """Render slot times as HH:MM."""
        return value.strftime("%H:%M")
