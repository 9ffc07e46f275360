"""Blocked slot schemas."""

from datetime import date, datetime, time
from uuid import UUID

from pydantic import BaseModel, Field


class BlockedSlotCreate(BaseModel):
    """Schema for blocking a viewing slot."""

    property_id: UUID
    blocked_date: str = Field(..., min_length=1, max_length=32)
    blocked_time: str = Field(..., min_length=1, max_length=32)
    reason: str | None = Field(None, max_length=255)


class BlockedSlotResponse(BaseModel):
    """Schema for blocked slot response."""

    id: UUID
    property_id: UUID
    blocked_date: date
    blocked_time: time
    reason: str | None = None
    blocked_by: UUID | None = None
    created_at: datetime

    model_config = {"from_attributes": True}
