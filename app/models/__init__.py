"""Database models."""

from app.models.appointments import appointments
from app.models.base import metadata
from app.models.blocked_slots import blocked_slots
from app.models.notifications import notifications
from app.models.properties import properties
from app.models.slot_locks import slot_locks
from app.models.users import users

__all__ = [
    "appointments",
    "blocked_slots",
    "metadata",
    "notifications",
    "properties",
    "slot_locks",
    "users",
]
