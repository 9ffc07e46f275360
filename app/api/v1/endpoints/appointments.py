"""Appointment endpoints."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Query, status

from app.dependencies import CurrentUser, DatabaseSession
from app.schemas.appointments import (
    AppointmentChangeResponse,
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentUpdate,
    AvailableSlotsResponse,
    BookingResponse,
    SlotQueueResponse,
)
from app.services.appointment_service import AppointmentService
from app.services.availability_service import AvailabilityService

router = APIRouter()


@router.get(
    "/available-slots/{property_id}",
    response_model=AvailableSlotsResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List open, blocked and occupied slots for a day",
)
async def list_available_slots(
    property_id: UUID,
    db: DatabaseSession,
    slot_date: str = Query(..., alias="date", description="YYYY-MM-DD"),
) -> AvailableSlotsResponse:
    """
    Public slot grid of a property for one day.

    Args:
        property_id: Property ID
        db: Database session
        slot_date: Day to inspect

    Returns:
        Open, blocked and occupied times
    """
    service = AvailabilityService(db)
    return await service.list_available_slots(property_id, slot_date)


@router.get(
    "/queue/{property_id}",
    response_model=SlotQueueResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Show a slot's holder and queue",
)
async def get_slot_queue(
    property_id: UUID,
    current_user: CurrentUser,
    db: DatabaseSession,
    slot_date: str = Query(..., alias="date"),
    slot_time: str = Query(..., alias="time"),
) -> SlotQueueResponse:
    """Active holder and waiting queue of a slot (agents and admins)."""
    service = AppointmentService(db)
    return await service.get_slot_queue(current_user, property_id, slot_date, slot_time)


@router.post(
    "/",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Appointments"],
    summary="Book a viewing",
)
async def create_appointment(
    data: AppointmentCreate,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> BookingResponse:
    """
    Book a viewing slot for the authenticated customer.

    The booking holds the slot when it is free and joins the slot's
    queue otherwise.

    Args:
        data: Property, date and time
        current_user: Authenticated user
        db: Database session

    Returns:
        Admission outcome
    """
    service = AppointmentService(db)
    return await service.create_appointment(current_user, data)


@router.get(
    "/",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List appointments",
)
async def list_appointments(
    current_user: CurrentUser,
    db: DatabaseSession,
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    property_id: UUID | None = Query(None),
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> AppointmentListResponse:
    """
    List appointments visible to the authenticated user.

    Args:
        current_user: Authenticated user
        db: Database session
        status_filter: Filter by status
        property_id: Filter by property
        from_date: Earliest appointment date
        to_date: Latest appointment date
        page: Page number
        page_size: Items per page

    Returns:
        Paginated list of appointments
    """
    filters = AppointmentFilters(
        status=status_filter,
        property_id=property_id,
        from_date=from_date,
        to_date=to_date,
        page=page,
        page_size=page_size,
    )

    service = AppointmentService(db)
    return await service.list_appointments(current_user, filters)


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: UUID,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> AppointmentResponse:
    """Get a specific appointment by ID."""
    service = AppointmentService(db)
    return await service.get_appointment(current_user, appointment_id)


@router.patch(
    "/{appointment_id}",
    response_model=AppointmentChangeResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Change status, reschedule or edit notes",
)
async def update_appointment(
    appointment_id: UUID,
    data: AppointmentUpdate,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> AppointmentChangeResponse:
    """
    Update an appointment.

    Cancelling or completing the slot's active holder promotes the next
    queued customer.

    Args:
        appointment_id: Appointment ID
        data: Status, new date/time, or notes
        current_user: Authenticated user
        db: Database session

    Returns:
        Updated appointment and promotion outcome
    """
    service = AppointmentService(db)
    return await service.update_appointment(current_user, appointment_id, data)


@router.delete(
    "/{appointment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Appointments"],
    summary="Delete appointment",
)
async def delete_appointment(
    appointment_id: UUID,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> None:
    """Permanently delete an appointment (admin only)."""
    service = AppointmentService(db)
    await service.delete_appointment(current_user, appointment_id)
