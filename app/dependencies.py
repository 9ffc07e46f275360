"""FastAPI dependencies."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import decode_access_token
from app.database import get_db
from app.schemas.users import ActingUser, UserRole
from app.services.user_service import UserService

# Security
security = HTTPBearer()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> UUID:
    """
    Read the user id from a verified bearer token.

    Raises:
        HTTPException: 401 if the token is invalid, expired or has no usable ``sub``
    """
    claims = decode_access_token(credentials.credentials)
    subject = claims.get("sub") if claims else None
    if not isinstance(subject, str):
        raise _unauthorized("Could not validate credentials")

    try:
        return UUID(subject)
    except ValueError:
        raise _unauthorized("Invalid user ID format") from None


async def get_current_user(
    user_id: Annotated[UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ActingUser:
    """
    Resolve the caller to the identity and role the permission gate acts on.

    Args:
        user_id: User ID from JWT token
        db: Database session

    Returns:
        Acting user with role

    Raises:
        HTTPException: 401 for unknown users, 403 for deactivated accounts
    """
    user = await UserService.get_user_by_id(db, user_id)
    if user is None:
        raise _unauthorized("User not found")

    if not user["is_active"]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is deactivated",
        )

    return ActingUser(id=user["id"], role=UserRole(user["role"]))


async def require_admin(
    user: Annotated[ActingUser, Depends(get_current_user)],
) -> ActingUser:
    """Allow only admins through."""
    if user.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUser = Annotated[ActingUser, Depends(get_current_user)]
AdminUser = Annotated[ActingUser, Depends(require_admin)]
