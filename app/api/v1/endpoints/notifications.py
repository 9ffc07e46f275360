"""Notification endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from app.dependencies import CurrentUser, DatabaseSession
from app.schemas.notifications import NotificationHistoryResponse, NotificationRecord
from app.services.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get(
    "/",
    response_model=NotificationHistoryResponse,
    status_code=status.HTTP_200_OK,
    summary="List my notifications",
)
async def list_notifications(
    current_user: CurrentUser,
    db: DatabaseSession,
    unread_only: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> NotificationHistoryResponse:
    """
    Booking notifications recorded for the authenticated user, newest first.

    Args:
        current_user: Authenticated user
        db: Database session
        unread_only: Only return unread notifications
        page: Page number
        page_size: Items per page

    Returns:
        Paginated notification history
    """
    service = NotificationService(db)
    return await service.list_for_user(current_user.id, unread_only, page, page_size)


@router.patch(
    "/{notification_id}/read",
    response_model=NotificationRecord,
    status_code=status.HTTP_200_OK,
    summary="Mark notification as read",
)
async def mark_notification_read(
    notification_id: UUID,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> NotificationRecord:
    """Mark one of my notifications as read."""
    service = NotificationService(db)
    return await service.mark_read(notification_id, current_user.id)
