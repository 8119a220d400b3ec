"""User and actor schemas."""

from enum import Enum
from uuid import UUID

from pydantic import BaseModel


class Role(str, Enum):
    """Role of an authenticated user."""

    PATIENT = "patient"
    DOCTOR = "doctor"
    RECEPTIONIST = "receptionist"


class Actor(BaseModel):
    """Authenticated caller passed into every scheduling operation."""

    id: UUID
    role: Role

    model_config = {"frozen": True}


class UserRecord(BaseModel):
    """User as read from the users table."""

    id: UUID
    role: Role
    first_name: str
    last_name: str
    phone_number: str | None = None

    model_config = {"from_attributes": True}

    def as_actor(self) -> Actor:
        """Capability token for this user."""
        return Actor(id=self.id, role=self.role)
