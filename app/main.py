"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.v1.router import api_router
from app.config import settings
from app.core.exceptions import AppException
from app.database import check_database_connection, engine
from app.middleware.error_handler import (
    app_exception_handler,
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from app.middleware.logging import LoggingMiddleware, configure_logging

configure_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Check the database on startup and release the pool on shutdown."""
    logger.info(
        "application_startup",
        environment=settings.environment,
        database_dialect=engine.dialect.name,
        slot_grid_start_hour=settings.booking_slot_start_hour,
        slot_grid_end_hour=settings.booking_slot_end_hour,
        slot_interval_minutes=settings.booking_slot_interval_minutes,
        max_retries=settings.booking_max_retries,
    )
    if not await check_database_connection():
        # Keep serving; /health/detailed reports the degraded state
        logger.error("database_connection_failed")

    yield

    await engine.dispose()
    logger.info("application_shutdown")


def create_app() -> FastAPI:
    """
    Assemble the booking API.

    Returns:
        Application with middleware, exception handlers, routes and metrics
    """
    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Viewing appointment booking with per-slot FIFO queues",
        debug=settings.debug,
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_middleware(LoggingMiddleware)

    application.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
    application.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    application.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    application.add_exception_handler(Exception, general_exception_handler)

    application.include_router(api_router, prefix=settings.api_v1_prefix)

    # Request counts and latencies per route, including booking conflicts (409)
    Instrumentator(
        should_group_status_codes=False,
        excluded_handlers=["/docs", "/redoc", "/openapi.json", "/metrics"],
        should_instrument_requests_inprogress=True,
        inprogress_labels=True,
    ).instrument(application).expose(application, endpoint="/metrics", include_in_schema=False)

    @application.get("/", tags=["Root"])
    async def root() -> dict[str, str]:
        return {
            "message": f"Welcome to {settings.app_name}",
            "version": settings.app_version,
            "docs": "/docs",
        }

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )
