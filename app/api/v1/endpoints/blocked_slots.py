"""Blocked slot endpoints (admin only)."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from app.dependencies import AdminUser, DatabaseSession
from app.schemas.blocked_slots import BlockedSlotCreate, BlockedSlotResponse
from app.services.blocked_slot_service import BlockedSlotService

router = APIRouter(prefix="/blocked-slots", tags=["Blocked Slots"])


@router.post(
    "/",
    response_model=BlockedSlotResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Block a viewing slot",
)
async def block_slot(
    data: BlockedSlotCreate,
    admin: AdminUser,
    db: DatabaseSession,
) -> BlockedSlotResponse:
    """
    Block a slot so it cannot be booked or queued for.

    Args:
        data: Property, date, time and reason
        admin: Authenticated admin
        db: Database session

    Returns:
        Created blocked slot
    """
    service = BlockedSlotService(db)
    return await service.block_slot(admin.id, data)


@router.get(
    "/",
    response_model=list[BlockedSlotResponse],
    status_code=status.HTTP_200_OK,
    summary="List blocked slots",
)
async def list_blocked_slots(
    admin: AdminUser,
    db: DatabaseSession,
    property_id: UUID = Query(...),
    slot_date: str | None = Query(None, alias="date"),
) -> list[BlockedSlotResponse]:
    """List blocked slots of a property."""
    service = BlockedSlotService(db)
    return await service.list_blocked_slots(property_id, slot_date)


@router.delete(
    "/{blocked_slot_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Unblock a slot",
)
async def unblock_slot(
    blocked_slot_id: UUID,
    admin: AdminUser,
    db: DatabaseSession,
) -> None:
    """Remove a blocked slot."""
    service = BlockedSlotService(db)
    await service.unblock_slot(blocked_slot_id)
