"""Health check endpoints."""

from fastapi import APIRouter, status
from pydantic import BaseModel

from app.config import settings
from app.database import check_database_connection, engine


class HealthResponse(BaseModel):
    """Liveness of the booking API."""

    status: str
    version: str
    environment: str


class SlotGridInfo(BaseModel):
    """Slot grid the engine is serving."""

    start_hour: int
    end_hour: int
    interval_minutes: int


class DetailedHealthResponse(HealthResponse):
    """Liveness plus storage reachability and engine settings."""

    database: str
    database_dialect: str
    slot_grid: SlotGridInfo
    max_retries: int


router = APIRouter(tags=["Health"])


def _base_health(state: str) -> dict[str, str]:
    return {
        "status": state,
        "version": settings.app_version,
        "environment": settings.environment,
    }


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
)
async def health_check() -> HealthResponse:
    """Report that the API process is up."""
    return HealthResponse(**_base_health("healthy"))


@router.get(
    "/health/detailed",
    response_model=DetailedHealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Detailed health check",
)
async def detailed_health_check() -> DetailedHealthResponse:
    """
    Health including the database the slot locks live in.

    Returns:
        ``degraded`` when the database cannot be reached
    """
    db_healthy = await check_database_connection()

    return DetailedHealthResponse(
        **_base_health("healthy" if db_healthy else "degraded"),
        database="healthy" if db_healthy else "unhealthy",
        database_dialect=engine.dialect.name,
        slot_grid=SlotGridInfo(
            start_hour=settings.booking_slot_start_hour,
            end_hour=settings.booking_slot_end_hour,
            interval_minutes=settings.booking_slot_interval_minutes,
        ),
        max_retries=settings.booking_max_retries,
    )


@router.get("/ping", status_code=status.HTTP_200_OK, summary="Simple ping")
async def ping() -> dict[str, str]:
    return {"message": "pong"}
