"""User endpoints."""

from fastapi import APIRouter, HTTPException, status

from app.dependencies import CurrentUser, DatabaseSession
from app.schemas.users import UserResponse
from app.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(
    current_user: CurrentUser,
    db: DatabaseSession,
):
    """Get the caller's account, including the role the booking engine acts on."""
    user = await UserService.get_user_by_id(db, current_user.id)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )

    return UserResponse.model_validate(user)
