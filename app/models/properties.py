"""Properties table model using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Table,
    Text,
    Uuid,
    text,
)

from app.models.base import metadata, utcnow

# Catalog rows are maintained by the listings service; the booking engine only
# reads status and assigned agent.
properties = Table(
    "properties",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("title", Text, nullable=False),
    Column("address", Text, nullable=True),
    Column("status", Text, nullable=False, server_default=text("'available'")),
    Column(
        "assigned_agent_id",
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    ),
    Column("created_at", DateTime(timezone=True), nullable=False, default=utcnow),
    Column("updated_at", DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow),
    CheckConstraint(
        "status IN ('available', 'pending', 'sold', 'rented')",
        name="properties_status_check",
    ),
    Index("idx_properties_assigned_agent", "assigned_agent_id"),
)
