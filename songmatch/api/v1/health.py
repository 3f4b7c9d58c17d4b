"""
Health check API endpoints.

This module defines health check endpoints for monitoring the application.
Design Rationale:
- Database connectivity verification
- Window configuration sanity check
- Cheap liveness probe without dependencies
"""

from typing import Dict
from fastapi import APIRouter, HTTPException, status

from sqlalchemy import text

from songmatch.core.clock import utc_now
from songmatch.models.schemas import HealthCheckResponse
from songmatch.core.dependencies import SessionDep, WindowDep
from songmatch.core.config import get_settings
from songmatch.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()

APP_VERSION = "1.0.0"


@router.get(
    "/",
    response_model=HealthCheckResponse,
    summary="Health check",
    description="Health check for the database and the daily window"
)
async def health_check(session: SessionDep, window: WindowDep) -> HealthCheckResponse:
    """
    Perform health check.

    Returns:
        Health check response with component status

    Raises:
        HTTPException: If a component is unhealthy
    """
    checks = {}

    try:
        await session.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except Exception as e:
        checks["database"] = f"unhealthy: {str(e)}"
        logger.error("Database health check failed", error=str(e))

    try:
        window.current_window_start()
        checks["window"] = "healthy"
    except Exception as e:
        checks["window"] = f"unhealthy: {str(e)}"
        logger.error("Window health check failed", error=str(e))

    failed_checks = [k for k, v in checks.items() if v != "healthy"]

    response = HealthCheckResponse(
        status="healthy" if not failed_checks else "unhealthy",
        timestamp=utc_now(),
        version=APP_VERSION,
        checks=checks
    )

    if failed_checks:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Unhealthy components: {', '.join(failed_checks)}"
        )

    return response


@router.get(
    "/ready",
    response_model=Dict[str, str],
    summary="Readiness check",
    description="Simple readiness check for Kubernetes or load balancers"
)
async def readiness_check(session: SessionDep) -> Dict[str, str]:
    try:
        await session.execute(text("SELECT 1"))
        return {"status": "ready", "timestamp": utc_now().isoformat()}

    except Exception as e:
        logger.error("Readiness check failed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not ready"
        )


@router.get(
    "/live",
    response_model=Dict[str, str],
    summary="Liveness check",
    description="Simple liveness check for Kubernetes"
)
async def liveness_check() -> Dict[str, str]:
    return {
        "status": "alive",
        "app": get_settings().APP_NAME,
        "timestamp": utc_now().isoformat()
    }
