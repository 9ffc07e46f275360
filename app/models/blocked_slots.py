"""Blocked slots table model using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    Table,
    Text,
    Time,
    UniqueConstraint,
    Uuid,
)

from app.models.base import metadata, utcnow

blocked_slots = Table(
    "blocked_slots",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column(
        "property_id",
        Uuid,
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("blocked_date", Date, nullable=False),
    Column("blocked_time", Time, nullable=False),
    Column("reason", Text, nullable=True),
    Column("blocked_by", Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, default=utcnow),
    UniqueConstraint(
        "property_id",
        "blocked_date",
        "blocked_time",
        name="uq_blocked_slots_slot",
    ),
)
