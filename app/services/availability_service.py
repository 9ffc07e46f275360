"""Slot availability decisions."""

from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import PropertyUnavailableException
from app.models.appointments import appointments
from app.schemas.appointments import AppointmentStatus, AvailableSlotsResponse
from app.services.property_catalog import (
    BlockedSlotRegistry,
    PropertyBookingStatus,
    PropertyCatalog,
)
from app.services.slot_keys import SlotKey, normalize_date
from app.services.slot_lock import SlotStateConflict

ACTIVE_STATUS_VALUES = (AppointmentStatus.PENDING.value, AppointmentStatus.CONFIRMED.value)


class SlotAvailability(str, Enum):
    """Availability of a single slot."""

    OPEN = "open"
    BLOCKED = "blocked"
    OCCUPIED = "occupied"


def daily_slot_grid() -> list[time]:
    """Times of the configured daily viewing grid, inclusive of the end hour."""
    start = datetime.combine(date.min, time(settings.booking_slot_start_hour))
    end = datetime.combine(date.min, time(settings.booking_slot_end_hour))
    step = timedelta(minutes=settings.booking_slot_interval_minutes)

    grid = []
    current = start
    while current <= end:
        grid.append(current.time())
        current += step
    return grid


def ensure_bookable(property_id: UUID, status: PropertyBookingStatus) -> None:
    """
    Raise unless the property can take viewings.

    Raises:
        PropertyUnavailableException: If the property is missing or not bookable
    """
    if not status.exists:
        raise PropertyUnavailableException(f"Property {property_id} not found")
    if not status.bookable:
        raise PropertyUnavailableException(
            f"Property {property_id} is {status.status} and not available for viewings"
        )


class AvailabilityService:
    """Decides whether a slot is open, blocked or occupied."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db
        self.catalog = PropertyCatalog(db)
        self.blocked_registry = BlockedSlotRegistry(db)

    async def get_active_holder(
        self,
        slot: SlotKey,
        exclude_id: UUID | None = None,
    ) -> dict[str, Any] | None:
        """
        Return the slot's pending/confirmed appointment, if any.

        Raises:
            SlotStateConflict: If more than one active holder is visible
        """
        conditions = [
            appointments.c.property_id == slot.property_id,
            appointments.c.appointment_date == slot.slot_date,
            appointments.c.appointment_time == slot.slot_time,
            appointments.c.status.in_(ACTIVE_STATUS_VALUES),
        ]
        if exclude_id is not None:
            conditions.append(appointments.c.id != exclude_id)

        rows = (await self.db.execute(select(appointments).where(and_(*conditions)))).fetchall()
        if len(rows) > 1:
            raise SlotStateConflict(f"Slot {slot} has {len(rows)} active holders")
        return dict(rows[0]._mapping) if rows else None

    async def check(
        self,
        slot: SlotKey,
        property_status: PropertyBookingStatus,
        exclude_id: UUID | None = None,
    ) -> SlotAvailability:
        """
        Classify a slot.

        Args:
            slot: Slot to check
            property_status: Current catalog status of the slot's property
            exclude_id: Appointment to ignore, used when it is moving slots

        Returns:
            Slot availability

        Raises:
            PropertyUnavailableException: If the property is not bookable
        """
        ensure_bookable(slot.property_id, property_status)

        if await self.blocked_registry.is_blocked(slot.property_id, slot.slot_date, slot.slot_time):
            return SlotAvailability.BLOCKED

        if await self.get_active_holder(slot, exclude_id=exclude_id) is not None:
            return SlotAvailability.OCCUPIED

        return SlotAvailability.OPEN

    async def list_available_slots(
        self,
        property_id: UUID,
        slot_date: str | date,
    ) -> AvailableSlotsResponse:
        """
        Build the daily slot grid for a property.

        Blocked wins over occupied when both apply to the same time.
        """
        day = normalize_date(slot_date)
        ensure_bookable(property_id, await self.catalog.get_property_booking_status(property_id))

        blocked = await self.blocked_registry.blocked_times(property_id, day)

        stmt = select(appointments.c.appointment_time).where(
            and_(
                appointments.c.property_id == property_id,
                appointments.c.appointment_date == day,
                appointments.c.status.in_(ACTIVE_STATUS_VALUES),
            )
        )
        occupied = {row.appointment_time for row in (await self.db.execute(stmt)).fetchall()}

        grid = daily_slot_grid()
        return AvailableSlotsResponse(
            property_id=property_id,
            appointment_date=day,
            open=[t for t in grid if t not in blocked and t not in occupied],
            blocked=[t for t in grid if t in blocked],
            occupied=[t for t in grid if t in occupied and t not in blocked],
        )
