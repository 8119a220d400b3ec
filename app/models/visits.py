"""Visits table model using SQLAlchemy Core."""

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    MetaData,
    Table,
    Text,
    Uuid,
    func,
)

metadata = MetaData()

visits = Table(
    "visits",
    metadata,
    Column("id", Uuid, primary_key=True),
    # Exactly one visit per appointment, ever
    Column(
        "appointment_id",
        Uuid,
        ForeignKey("appointments.id", ondelete="RESTRICT"),
        nullable=False,
        unique=True,
    ),
    Column(
        "completed_by_doctor_id",
        Uuid,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    ),
    Column("notes", Text, nullable=True),
    Column("completed_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)
