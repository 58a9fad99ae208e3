"""Health check endpoints."""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi import APIRouter, HTTPException, status

from piggy.core.config import settings
from piggy.core.logging import get_logger
from piggy.database.connection import db_healthcheck
from piggy.schemas.common import HealthResponse


router = APIRouter(prefix="/health")

logger = get_logger("health")


@router.get(
    "",
    response_model=HealthResponse,
    summary="Health check",
    description="Check the health status of the API and its database.",
)
async def health_check() -> HealthResponse:
    """
    Perform health check on API and dependencies.

    Reports `ok` while the database answers, `degraded` otherwise.
    """
    checks = {"database": await db_healthcheck()}
    if not checks["database"]:
        logger.warning("Health check: database unavailable")

    return HealthResponse(
        status="ok" if all(checks.values()) else "degraded",
        version=settings.app_version,
        timestamp=datetime.now(UTC),
        checks=checks,
    )


@router.get(
    "/ready",
    summary="Readiness check",
    description="Check if the API is ready to accept traffic.",
)
async def readiness_check() -> dict:
    """
    Kubernetes-style readiness probe.

    Returns 200 if ready, useful for load balancer health checks.
    """
    if not await db_healthcheck():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database not ready",
        )
    return {"status": "ready"}


@router.get(
    "/live",
    summary="Liveness check",
    description="Check if the API process is alive.",
)
async def liveness_check() -> dict:
    """Kubernetes-style liveness probe."""
    return {"status": "alive"}
