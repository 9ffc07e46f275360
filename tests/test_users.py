"""Tests for user endpoints."""

from collections.abc import Callable
from datetime import timedelta
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import create_access_token
from app.models.users import users
from app.schemas.users import ActingUser

HeadersFactory = Callable[[ActingUser], dict]


@pytest.mark.asyncio
async def test_get_me(client: AsyncClient, agent: ActingUser, auth_headers: HeadersFactory) -> None:
    """Test reading the caller's own profile."""
    response = await client.get("/api/v1/users/me", headers=auth_headers(agent))

    assert response.status_code == 200
    data = response.json()
    assert data["id"] == str(agent.id)
    assert data["role"] == "agent"
    assert data["is_active"] is True


@pytest.mark.asyncio
async def test_unknown_user_token(client: AsyncClient) -> None:
    """Test a valid token for a user that does not exist."""
    token = create_access_token(uuid4(), expires_delta=timedelta(minutes=5))

    response = await client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_invalid_token(client: AsyncClient) -> None:
    response = await client.get("/api/v1/users/me", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_deactivated_user_is_rejected(
    client: AsyncClient,
    db_session: AsyncSession,
    customer_a: ActingUser,
    auth_headers: HeadersFactory,
) -> None:
    """Test that a deactivated account is refused even with a valid token."""
    await db_session.execute(update(users).where(users.c.id == customer_a.id).values(is_active=False))
    await db_session.commit()

    response = await client.get("/api/v1/users/me", headers=auth_headers(customer_a))
    assert response.status_code == 403
