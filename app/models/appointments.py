"""Appointments table model using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Table,
    Text,
    Time,
    Uuid,
    text,
)

from app.models.base import metadata, utcnow

ACTIVE_HOLDER_WHERE = "status IN ('pending', 'confirmed')"
NON_TERMINAL_WHERE = "status IN ('pending', 'confirmed', 'queued')"

# Appointments table
appointments = Table(
    "appointments",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # Ownership / references
    Column(
        "property_id",
        Uuid,
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("customer_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    # Snapshot of the property's assigned agent at booking time
    Column("agent_id", Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
    # Slot identity
    Column("appointment_date", Date, nullable=False),
    Column("appointment_time", Time, nullable=False),
    # Audit only; queue order is queue_position
    Column("booking_timestamp", DateTime(timezone=True), nullable=False, default=utcnow),
    # Status management
    Column("status", Text, nullable=False, server_default=text("'pending'")),
    Column("queue_position", Integer, nullable=True),
    # Metadata
    Column("notes", Text, nullable=True),
    # Audit fields
    Column("created_at", DateTime(timezone=True), nullable=False, default=utcnow),
    Column("updated_at", DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow),
    Column("cancelled_at", DateTime(timezone=True), nullable=True),
    Column("completed_at", DateTime(timezone=True), nullable=True),
    # Constraints
    CheckConstraint(
        "status IN ('pending', 'confirmed', 'queued', 'completed', 'cancelled')",
        name="appointments_status_check",
    ),
    CheckConstraint(
        "(status = 'queued' AND queue_position >= 1) "
        "OR (status <> 'queued' AND queue_position IS NULL)",
        name="appointments_queue_position_check",
    ),
    Index("idx_appointments_slot", "property_id", "appointment_date", "appointment_time"),
    Index("idx_appointments_customer", "customer_id"),
    Index("idx_appointments_agent", "agent_id"),
    Index("idx_appointments_status", "status"),
    # At most one active holder per slot
    Index(
        "uq_appointments_active_holder",
        "property_id",
        "appointment_date",
        "appointment_time",
        unique=True,
        postgresql_where=text(ACTIVE_HOLDER_WHERE),
        sqlite_where=text(ACTIVE_HOLDER_WHERE),
    ),
    # At most one non-terminal appointment per customer per property
    Index(
        "uq_appointments_customer_property_active",
        "property_id",
        "customer_id",
        unique=True,
        postgresql_where=text(NON_TERMINAL_WHERE),
        sqlite_where=text(NON_TERMINAL_WHERE),
    ),
)
