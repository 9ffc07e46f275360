"""Notification dispatch for booking events.

The booking engine only decides who should hear about what. This service
hands each decision to the notification store that delivery workers read
from; transport is not handled here.
"""

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import and_, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundException
from app.models.notifications import notifications
from app.schemas.notifications import (
    NotificationEvent,
    NotificationHistoryResponse,
    NotificationKind,
    NotificationRecord,
)

logger = structlog.get_logger(__name__)

TEMPLATES: dict[NotificationKind, tuple[str, str]] = {
    NotificationKind.APPOINTMENT_REQUESTED: (
        "New Appointment Request",
        "New viewing request for {property} on {appointment_date} at {appointment_time}.",
    ),
    NotificationKind.APPOINTMENT_QUEUED: (
        "Added to Queue",
        "This slot is in high demand! You are number {queue_position} in line for {property} "
        "on {appointment_date} at {appointment_time}.",
    ),
    NotificationKind.APPOINTMENT_CONFIRMED: (
        "Appointment Confirmed",
        "The viewing of {property} on {appointment_date} at {appointment_time} has been confirmed.",
    ),
    NotificationKind.APPOINTMENT_COMPLETED: (
        "Viewing Completed",
        "Your viewing of {property} has been marked as completed. We hope it went well!",
    ),
    NotificationKind.APPOINTMENT_CANCELLED: (
        "Appointment Cancelled",
        "Your appointment for {property} on {appointment_date} at {appointment_time} has been cancelled.",
    ),
    NotificationKind.APPOINTMENT_RESCHEDULED: (
        "Appointment Rescheduled",
        "Your appointment for {property} was moved to {appointment_date} at {appointment_time}.",
    ),
    NotificationKind.APPOINTMENT_PROMOTED: (
        "Slot Available",
        "Great news! Your queued booking for {property} on {appointment_date} at "
        "{appointment_time} has been promoted to confirmed. The slot is now yours!",
    ),
    NotificationKind.CUSTOMER_CANCELLED: (
        "Appointment Cancelled",
        "Customer cancelled the appointment for {property} on {appointment_date} at {appointment_time}.",
    ),
}


class _Defaults(dict):
    def __missing__(self, key: str) -> str:
        return "-"


def render_notification(event: NotificationEvent) -> tuple[str, str]:
    """Title and message for an event."""
    title, template = TEMPLATES[event.kind]
    context = _Defaults(event.context)
    context.setdefault("property", event.context.get("property_title") or "the property")
    return title, template.format_map(context)


class NotificationService:
    """Records booking notifications for users."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def dispatch(self, event: NotificationEvent) -> UUID:
        """
        Record one notification and commit it.

        Returns:
            ID of the stored notification
        """
        title, message = render_notification(event)
        result = await self.db.execute(
            insert(notifications)
            .values(
                user_id=event.recipient_user_id,
                kind=event.kind.value,
                title=title,
                message=message,
                context=event.context,
            )
            .returning(notifications.c.id)
        )
        notification_id = result.scalar_one()
        await self.db.commit()

        logger.info(
            "notification_recorded",
            notification_id=str(notification_id),
            user_id=str(event.recipient_user_id),
            kind=event.kind.value,
        )
        return notification_id

    async def dispatch_all(self, events: Iterable[NotificationEvent]) -> int:
        """
        Best-effort dispatch of several events.

        Failures are logged and skipped; the caller's own work is already
        committed and is never affected.

        Returns:
            Number of events recorded
        """
        delivered = 0
        for event in events:
            try:
                await self.dispatch(event)
                delivered += 1
            except Exception as e:
                await self.db.rollback()
                logger.warning(
                    "notification_dispatch_failed",
                    user_id=str(event.recipient_user_id),
                    kind=event.kind.value,
                    error=str(e),
                )
        return delivered

    async def list_for_user(
        self,
        user_id: UUID,
        unread_only: bool = False,
        page: int = 1,
        page_size: int = 20,
    ) -> NotificationHistoryResponse:
        """Paginated notifications of a user, newest first."""
        conditions: list[Any] = [notifications.c.user_id == user_id]
        if unread_only:
            conditions.append(notifications.c.is_read.is_(False))

        count_stmt = select(func.count()).select_from(notifications).where(and_(*conditions))
        total = (await self.db.execute(count_stmt)).scalar() or 0

        stmt = (
            select(notifications)
            .where(and_(*conditions))
            .order_by(notifications.c.created_at.desc())
            .limit(page_size)
            .offset((page - 1) * page_size)
        )
        rows = (await self.db.execute(stmt)).fetchall()

        return NotificationHistoryResponse(
            total=total,
            page=page,
            page_size=page_size,
            items=[NotificationRecord.model_validate(dict(row._mapping)) for row in rows],
        )

    async def mark_read(self, notification_id: UUID, user_id: UUID) -> NotificationRecord:
        """
        Mark one of the user's notifications as read.

        Raises:
            NotFoundException: If the notification does not belong to the user
        """
        stmt = (
            update(notifications)
            .where(
                and_(
                    notifications.c.id == notification_id,
                    notifications.c.user_id == user_id,
                )
            )
            .values(is_read=True, read_at=datetime.now(UTC))
            .returning(notifications)
        )
        row = (await self.db.execute(stmt)).fetchone()
        if row is None:
            await self.db.rollback()
            raise NotFoundException("Notification not found")

        await self.db.commit()
        return NotificationRecord.model_validate(dict(row._mapping))
