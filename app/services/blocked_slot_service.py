"""Administration of the blocked-slot registry."""

from datetime import date
from uuid import UUID

import structlog
from sqlalchemy import and_, delete, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictException, NotFoundException
from app.models.blocked_slots import blocked_slots
from app.models.properties import properties
from app.schemas.blocked_slots import BlockedSlotCreate, BlockedSlotResponse
from app.services.slot_keys import normalize_date, resolve_slot_key

logger = structlog.get_logger(__name__)


class BlockedSlotService:
    """Service for managing blocked viewing slots."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def block_slot(self, admin_id: UUID, data: BlockedSlotCreate) -> BlockedSlotResponse:
        """
        Block a slot for future bookings.

        Existing appointments on the slot are left alone; blocking only
        stops new admissions.

        Raises:
            NotFoundException: If the property does not exist
            ConflictException: If the slot is already blocked
        """
        slot = resolve_slot_key(data.property_id, data.blocked_date, data.blocked_time)

        exists = await self.db.execute(select(properties.c.id).where(properties.c.id == slot.property_id))
        if exists.first() is None:
            raise NotFoundException("Property not found")

        try:
            result = await self.db.execute(
                insert(blocked_slots)
                .values(
                    property_id=slot.property_id,
                    blocked_date=slot.slot_date,
                    blocked_time=slot.slot_time,
                    reason=data.reason,
                    blocked_by=admin_id,
                )
                .returning(blocked_slots)
            )
            row = result.fetchone()
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictException("This slot is already blocked") from e

        logger.info("slot_blocked", slot=slot.lock_key, blocked_by=str(admin_id))
        return BlockedSlotResponse.model_validate(dict(row._mapping))

    async def list_blocked_slots(
        self,
        property_id: UUID,
        slot_date: str | date | None = None,
    ) -> list[BlockedSlotResponse]:
        """List blocked slots of a property, optionally for one date."""
        conditions = [blocked_slots.c.property_id == property_id]
        if slot_date is not None:
            conditions.append(blocked_slots.c.blocked_date == normalize_date(slot_date))

        stmt = (
            select(blocked_slots)
            .where(and_(*conditions))
            .order_by(blocked_slots.c.blocked_date.asc(), blocked_slots.c.blocked_time.asc())
        )
        rows = (await self.db.execute(stmt)).fetchall()
        return [BlockedSlotResponse.model_validate(dict(row._mapping)) for row in rows]

    async def unblock_slot(self, blocked_slot_id: UUID) -> None:
        """
        Remove a blocked slot.

        Raises:
            NotFoundException: If the blocked slot does not exist
        """
        result = await self.db.execute(delete(blocked_slots).where(blocked_slots.c.id == blocked_slot_id))
        if not result.rowcount:
            await self.db.rollback()
            raise NotFoundException("Blocked slot not found")

        await self.db.commit()
        logger.info("slot_unblocked", blocked_slot_id=str(blocked_slot_id))
