"""FIFO queue bookkeeping for a slot's waiting appointments.

Every method runs inside the caller's transaction and assumes the caller
already holds the slot lock; see ``app.services.slot_lock``.
"""

from typing import Any

import structlog
from sqlalchemy import and_, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.appointments import appointments
from app.models.base import utcnow
from app.schemas.appointments import AppointmentStatus
from app.services.slot_keys import SlotKey

logger = structlog.get_logger(__name__)


def _queued_in(slot: SlotKey) -> list[Any]:
    return [
        appointments.c.property_id == slot.property_id,
        appointments.c.appointment_date == slot.slot_date,
        appointments.c.appointment_time == slot.slot_time,
        appointments.c.status == AppointmentStatus.QUEUED.value,
    ]


class QueueLedger:
    """Keeps queued positions of a slot contiguous from 1."""

    def __init__(self, db: AsyncSession):
        """Initialize ledger with database session."""
        self.db = db

    async def next_position(self, slot: SlotKey) -> int:
        """Position the next queued request for ``slot`` receives."""
        stmt = select(func.coalesce(func.max(appointments.c.queue_position), 0)).where(
            and_(*_queued_in(slot))
        )
        current_max = (await self.db.execute(stmt)).scalar() or 0
        return int(current_max) + 1

    async def list_queue(self, slot: SlotKey) -> list[dict[str, Any]]:
        """Queued appointments of ``slot`` in position order."""
        stmt = (
            select(appointments)
            .where(and_(*_queued_in(slot)))
            .order_by(appointments.c.queue_position.asc())
        )
        return [dict(row._mapping) for row in (await self.db.execute(stmt)).fetchall()]

    async def remove_and_compact(self, slot: SlotKey, position: int) -> int:
        """
        Close the gap left by a queued entry that left position ``position``.

        The departing row must already be out of the queue (no longer
        ``queued``). Every entry behind it moves up by exactly one.

        Returns:
            Number of entries shifted
        """
        stmt = (
            update(appointments)
            .where(and_(*_queued_in(slot), appointments.c.queue_position > position))
            .values(
                queue_position=appointments.c.queue_position - 1,
                updated_at=utcnow(),
            )
        )
        result = await self.db.execute(stmt)
        shifted = result.rowcount or 0

        logger.info(
            "queue_compacted",
            slot=slot.lock_key,
            removed_position=position,
            shifted=shifted,
        )
        return shifted

    async def promote_head(self, slot: SlotKey) -> dict[str, Any] | None:
        """
        Take the entry at position 1 out of the queue as the new active holder.

        The head becomes ``confirmed`` with no position and the rest of the
        queue is compacted.

        Returns:
            The promoted appointment, or None when the queue is empty
        """
        stmt = (
            select(appointments)
            .where(and_(*_queued_in(slot)))
            .order_by(appointments.c.queue_position.asc())
            .limit(1)
        )
        head = (await self.db.execute(stmt)).fetchone()
        if head is None:
            return None

        head_position = head.queue_position
        result = await self.db.execute(
            update(appointments)
            .where(appointments.c.id == head.id)
            .values(
                status=AppointmentStatus.CONFIRMED.value,
                queue_position=None,
                updated_at=utcnow(),
            )
            .returning(appointments)
        )
        promoted = dict(result.fetchone()._mapping)

        await self.remove_and_compact(slot, head_position)
        return promoted
