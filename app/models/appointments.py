"""Appointments table model using SQLAlchemy Core."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    MetaData,
    Table,
    Text,
    Time,
    Uuid,
    func,
    text,
)

# Metadata for all tables
metadata = MetaData()

# Rows in any other status occupy their slot
OCCUPIES_SLOT = text("status <> 'cancelled'")

# Appointments table
appointments = Table(
    "appointments",
    metadata,
    Column("id", Uuid, primary_key=True),
    # Ownership / references
    Column(
        "patient_id",
        Uuid,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    ),
    # Slot
    Column("appointment_date", Date, nullable=False, index=True),
    Column("appointment_time", Time, nullable=False),
    # Status management
    Column(
        "status",
        Text,
        nullable=False,
        server_default="scheduled",
    ),
    # Audit fields
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    # Cancellation keeps the row for history
    Column("cancelled_at", DateTime(timezone=True), nullable=True),
    # Constraints
    CheckConstraint(
        "status IN ('scheduled', 'completed', 'no_show', 'cancelled')",
        name="appointments_status_check",
    ),
    Index(
        "uq_appointments_occupied_slot",
        "appointment_date",
        "appointment_time",
        unique=True,
        postgresql_where=OCCUPIES_SLOT,
        sqlite_where=OCCUPIES_SLOT,
    ),
)
