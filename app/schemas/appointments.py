"""Appointment schemas for request/response validation."""

from datetime import date, time
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, field_serializer


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"
    CANCELLED = "cancelled"


class AppointmentCreate(BaseModel):
    """Schema for booking an appointment."""

    patient_id: UUID
    date: date
    time: time


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    id: UUID
    patient_id: UUID
    date: date
    time: time
    status: AppointmentStatus

    model_config = {"from_attributes": True}

    @field_serializer("time")
    def serialize_time(self, value: time) -> str:
        """Render slot times as HH:MM."""
        return value.strftime("%H:%M")


class AppointmentWithDetailsResponse(AppointmentResponse):
    """Appointment joined with the patient's contact details."""

    patient_first_name: str
    patient_last_name: str
    patient_phone_number: str | None = None
