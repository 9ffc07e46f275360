"""Per-slot lock rows.

Backends without advisory locks serialize a slot by writing its row here
before reading and mutating the slot's appointments. On SQLite the write
takes the database write lock until commit. Rows are kept, one per slot
ever locked. PostgreSQL uses advisory locks instead and leaves this
table empty.
"""

from sqlalchemy import Column, DateTime, Integer, String, Table

from app.models.base import metadata, utcnow

slot_locks = Table(
    "slot_locks",
    metadata,
    Column("slot_key", String(128), primary_key=True),
    Column("version", Integer, nullable=False, default=0),
    Column("updated_at", DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow),
)
