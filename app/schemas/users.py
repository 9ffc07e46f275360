"""User schemas for request/response validation."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, EmailStr


class UserRole(str, Enum):
    """Roles understood by the booking engine."""

    CUSTOMER = "customer"
    AGENT = "agent"
    ADMIN = "admin"


class ActingUser(BaseModel):
    """Authenticated caller as seen by the permission gate."""

    id: UUID
    role: UserRole

    model_config = {"frozen": True}


class UserResponse(BaseModel):
    """User schema as stored in database."""

    id: UUID
    email: EmailStr
    full_name: str | None = None
    role: UserRole
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}
