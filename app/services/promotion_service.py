"""Promotion of waiting customers when a slot's active holder leaves."""

from dataclasses import dataclass, field
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.schemas.notifications import NotificationEvent, NotificationKind
from app.services.queue_ledger import QueueLedger
from app.services.slot_keys import SlotKey

logger = structlog.get_logger(__name__)


@dataclass
class PromotionResult:
    """Outcome of a promotion attempt."""

    promoted: dict[str, Any] | None = None
    events: list[NotificationEvent] = field(default_factory=list)


class PromotionService:
    """Fills a vacated slot from the head of its queue."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db
        self.ledger = QueueLedger(db)

    async def promote_next(self, slot: SlotKey) -> PromotionResult:
        """
        Promote the earliest queued appointment of ``slot`` to ``confirmed``.

        Runs in the caller's slot-locked transaction. The returned events are
        dispatched by the caller only after commit, so a notification failure
        can never undo the promotion.

        Args:
            slot: Slot whose active holder just left

        Returns:
            Promoted appointment (if any) and the events to dispatch
        """
        promoted = await self.ledger.promote_head(slot)
        if promoted is None:
            logger.info("no_promotion", slot=slot.lock_key)
            return PromotionResult()

        logger.info(
            "appointment_promoted",
            slot=slot.lock_key,
            appointment_id=str(promoted["id"]),
            customer_id=str(promoted["customer_id"]),
        )

        context = {
            "appointment_id": str(promoted["id"]),
            "property_id": str(slot.property_id),
            "appointment_date": slot.slot_date.isoformat(),
            "appointment_time": slot.slot_time.strftime("%H:%M"),
        }
        events = [
            NotificationEvent(
                recipient_user_id=promoted["customer_id"],
                kind=NotificationKind.APPOINTMENT_PROMOTED,
                context=context,
            )
        ]
        if promoted.get("agent_id"):
            events.append(
                NotificationEvent(
                    recipient_user_id=promoted["agent_id"],
                    kind=NotificationKind.APPOINTMENT_CONFIRMED,
                    context={**context, "customer_id": str(promoted["customer_id"])},
                )
            )
        return PromotionResult(promoted=promoted, events=events)
