"""Appointment schemas for request/response validation."""

from datetime import date, datetime, time
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    QUEUED = "queued"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AppointmentCreate(BaseModel):
    """Schema for booking a viewing slot."""

    property_id: UUID
    # Raw strings are normalized by the slot key resolver
    appointment_date: str = Field(..., min_length=1, max_length=32, examples=["2024-01-15"])
    appointment_time: str = Field(..., min_length=1, max_length=32, examples=["10:00"])
    notes: str | None = Field(None, max_length=1000)


class AppointmentUpdate(BaseModel):
    """Schema for status changes, reschedules and note edits."""

    status: AppointmentStatus | None = None
    appointment_date: str | None = Field(None, min_length=1, max_length=32)
    appointment_time: str | None = Field(None, min_length=1, max_length=32)
    notes: str | None = Field(None, max_length=1000)

    @model_validator(mode="after")
    def validate_change(self) -> "AppointmentUpdate":
        """Reject empty updates and reschedules combined with a status change."""
        rescheduling = self.appointment_date is not None or self.appointment_time is not None
        if self.status is None and not rescheduling and self.notes is None:
            raise ValueError("At least one of status, appointment_date, appointment_time or notes is required")
        if self.status is not None and rescheduling:
            raise ValueError("A reschedule cannot be combined with a status change")
        return self


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    id: UUID
    property_id: UUID
    customer_id: UUID
    agent_id: UUID | None = None
    appointment_date: date
    appointment_time: time
    booking_timestamp: datetime
    status: AppointmentStatus
    queue_position: int | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime
    cancelled_at: datetime | None = None
    completed_at: datetime | None = None

    model_config = {"from_attributes": True}


class BookingResponse(BaseModel):
    """Outcome of an admission decision."""

    appointment: AppointmentResponse
    is_queued: bool
    queue_position: int | None = None
    message: str


class AppointmentChangeResponse(BaseModel):
    """Outcome of a status change or reschedule."""

    appointment: AppointmentResponse
    promoted_appointment_id: UUID | None = None
    promoted_customer_id: UUID | None = None
    message: str


class AppointmentListResponse(BaseModel):
    """Schema for paginated appointment list response."""

    total: int
    page: int
    page_size: int
    items: list[AppointmentResponse]


class AppointmentFilters(BaseModel):
    """Schema for appointment filtering."""

    status: AppointmentStatus | None = None
    property_id: UUID | None = None
    from_date: date | None = None
    to_date: date | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)


class AvailableSlotsResponse(BaseModel):
    """Daily slot grid for a property, split by availability."""

    property_id: UUID
    appointment_date: date
    open: list[time]
    blocked: list[time]
    occupied: list[time]


class SlotQueueResponse(BaseModel):
    """Holder and FIFO queue of a single slot."""

    property_id: UUID
    appointment_date: date
    appointment_time: time
    holder: AppointmentResponse | None = None
    queue: list[AppointmentResponse]
