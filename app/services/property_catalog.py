"""Read-only views of the property catalog and the blocked-slot registry."""

from dataclasses import dataclass
from datetime import date, time
from uuid import UUID

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.blocked_slots import blocked_slots
from app.models.properties import properties

BOOKABLE_PROPERTY_STATUSES = frozenset({"available"})


@dataclass(frozen=True)
class PropertyBookingStatus:
    """What the booking engine needs to know about a property."""

    exists: bool
    bookable: bool
    assigned_agent_id: UUID | None
    title: str | None = None
    status: str | None = None


class PropertyCatalog:
    """Property catalog collaborator."""

    def __init__(self, db: AsyncSession):
        """Initialize catalog with database session."""
        self.db = db

    async def get_property_booking_status(self, property_id: UUID) -> PropertyBookingStatus:
        """Return bookability and assigned agent for a property."""
        stmt = select(
            properties.c.title,
            properties.c.status,
            properties.c.assigned_agent_id,
        ).where(properties.c.id == property_id)

        row = (await self.db.execute(stmt)).fetchone()
        if row is None:
            return PropertyBookingStatus(exists=False, bookable=False, assigned_agent_id=None)

        return PropertyBookingStatus(
            exists=True,
            bookable=row.status in BOOKABLE_PROPERTY_STATUSES,
            assigned_agent_id=row.assigned_agent_id,
            title=row.title,
            status=row.status,
        )


class BlockedSlotRegistry:
    """Administrator-maintained blocked slots, read-only from the engine's side."""

    def __init__(self, db: AsyncSession):
        """Initialize registry with database session."""
        self.db = db

    async def is_blocked(self, property_id: UUID, slot_date: date, slot_time: time) -> bool:
        """Check whether a single slot is blocked."""
        stmt = select(blocked_slots.c.id).where(
            and_(
                blocked_slots.c.property_id == property_id,
                blocked_slots.c.blocked_date == slot_date,
                blocked_slots.c.blocked_time == slot_time,
            )
        )
        return (await self.db.execute(stmt)).first() is not None

    async def blocked_times(self, property_id: UUID, slot_date: date) -> set[time]:
        """All blocked times of a property on a date."""
        stmt = select(blocked_slots.c.blocked_time).where(
            and_(
                blocked_slots.c.property_id == property_id,
                blocked_slots.c.blocked_date == slot_date,
            )
        )
        result = await self.db.execute(stmt)
        return {row.blocked_time for row in result.fetchall()}
