"""Notification schemas."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class NotificationKind(str, Enum):
    """Events the booking engine emits to the notification collaborator."""

    APPOINTMENT_REQUESTED = "appointment_requested"
    APPOINTMENT_QUEUED = "appointment_queued"
    APPOINTMENT_CONFIRMED = "appointment_confirmed"
    APPOINTMENT_COMPLETED = "appointment_completed"
    APPOINTMENT_CANCELLED = "appointment_cancelled"
    APPOINTMENT_RESCHEDULED = "appointment_rescheduled"
    APPOINTMENT_PROMOTED = "appointment_promoted"
    CUSTOMER_CANCELLED = "customer_cancelled"


class NotificationEvent(BaseModel):
    """A decision to notify a user; delivery is somebody else's job."""

    recipient_user_id: UUID
    kind: NotificationKind
    context: dict[str, Any] = Field(default_factory=dict)


class NotificationRecord(BaseModel):
    """Stored notification."""

    id: UUID
    user_id: UUID
    kind: str
    title: str
    message: str
    context: dict[str, Any] | None = None
    is_read: bool
    read_at: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationHistoryResponse(BaseModel):
    """Paginated notification history."""

    total: int
    page: int
    page_size: int
    items: list[NotificationRecord]
