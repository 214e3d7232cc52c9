"""
Health check endpoints for monitoring and orchestration (K8s, Docker, etc.)

Provides multiple health check endpoints:
- /health: Basic liveness check (always returns 200)
- /health/db: Storage connectivity check
- /health/ready: Readiness check (storage reachable, provider circuit state)
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_session
from app.infrastructure.circuit_breaker import provider_breaker

logger = logging.getLogger(__name__)

router = APIRouter()

SERVICE_NAME = "flight-bookings-api"


async def _storage_healthy(session: AsyncSession | None) -> bool:
    if session is None:
        # in-memory storage is always reachable
        return True
    try:
        result = await session.execute(text("SELECT 1"))
        result.scalar()
        return True
    except (SQLAlchemyError, OSError) as e:
        logger.error("Database health check failed", exc_info=e)
        return False


@router.get("/health")
async def health_check():
    """
    Basic liveness probe.

    Returns 200 OK if the application is running.
    """
    return {"status": "ok", "service": SERVICE_NAME}


@router.get("/health/db")
async def health_check_db(session: AsyncSession | None = Depends(get_session)):
    """
    Storage connectivity health check.

    Returns 503 Service Unavailable if the database is down.
    """
    component = "memory" if session is None else "database"
    if await _storage_healthy(session):
        return {"status": "healthy", "component": component}
    return JSONResponse(
        status_code=503,
        content={
            "status": "unhealthy",
            "component": component,
            "error": "Database connection failed",
        },
    )


@router.get("/health/ready")
async def health_check_ready(session: AsyncSession | None = Depends(get_session)):
    """
    Readiness probe.

    Storage must be reachable. An open provider circuit is reported but does
    not make the service unready: bookings are still held and resynced later.
    """
    health_status = {
        "status": "ready",
        "checks": {
            "provider_circuit": provider_breaker.current_state,
        },
    }

    if not await _storage_healthy(session):
        logger.error("Readiness check: storage unhealthy")
        health_status["status"] = "not_ready"
        health_status["checks"]["storage"] = "unhealthy"
        return JSONResponse(status_code=503, content=health_status)

    health_status["checks"]["storage"] = "healthy"
    return health_status


@router.get("/health/live")
async def health_check_live():
    """Alias for /health for Kubernetes liveness probe."""
    return {"status": "ok", "service": SERVICE_NAME}
