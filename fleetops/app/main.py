"""
FastAPI Application Entry Point.

This is the main application file for the FleetOps Backend.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from fleetops.app.core.config import settings
from fleetops.app.core.logging import configure_logging
from fleetops.app.core.observability import ObservabilityMiddleware
from fleetops.app.api.v1.router import router as api_v1_router
from fleetops.app.core.redis_client import close_redis, get_redis, ping_redis
from fleetops.app.db.session import engine, Base, get_db
from fleetops.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from fleetops.app.models.user import User  # noqa: F401
from fleetops.app.models.audit_log import AuditLog  # noqa: F401
from fleetops.app.models.vehicle import Vehicle  # noqa: F401
from fleetops.app.models.driver import Driver  # noqa: F401
from fleetops.app.models.trip import Trip  # noqa: F401
from fleetops.app.models.vehicle_log import VehicleLog  # noqa: F401

configure_logging(settings.log_level)
logger = logging.getLogger("fleetops")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    Creates database tables on startup; closes the engine and Redis on shutdown.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("%s %s started", settings.app_name, settings.api_version)
    yield
    await engine.dispose()
    await close_redis()
    logger.info("%s stopped", settings.app_name)

# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Fleet management API: vehicles, drivers, trips, logs and analytics",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check(
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    """
    Health check endpoint.

    The database is required; Redis only backs token revocation, so losing
    it degrades the service instead of failing it.
    """
    try:
        await db.execute(text("SELECT 1"))
        database_ok = True
    except (SQLAlchemyError, OSError) as e:
        logger.error("Health check: database unreachable: %s", e)
        database_ok = False
    redis_ok = await ping_redis(redis)

    if not database_ok:
        status = "unhealthy"
    elif not redis_ok:
        status = "degraded"
    else:
        status = "healthy"

    return JSONResponse(
        status_code=200 if database_ok else 503,
        content={
            "status": status,
            "app_name": settings.app_name,
            "version": settings.api_version,
            "checks": {"database": database_ok, "redis": redis_ok},
        },
    )


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": "Welcome to FleetOps Backend API",
        "docs": "/docs",
        "health": "/health",
    }
