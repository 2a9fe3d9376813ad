# =============================================================================
# IDENTITY API SCAFFOLD - HEALTH ROUTES
# =============================================================================
# File: api/routes/health_routes.py
# Description: Health check endpoints for monitoring and orchestration
# =============================================================================

from datetime import datetime
from typing import Dict, Any

from fastapi import APIRouter
from pydantic import BaseModel, Field

from db.factory import DBFactory
from db.adapters.postgres_adapter import PostgresAdapter
from core.config import settings
from utils.helpers import utc_now


router = APIRouter(tags=["Health"])


# =============================================================================
# RESPONSE MODELS
# =============================================================================

class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Overall status: healthy, degraded")
    timestamp: datetime = Field(..., description="Check timestamp")
    version: str = Field(..., description="Application version")
    environment: str = Field(..., description="Environment name")


class DetailedHealthResponse(HealthResponse):
    """Readiness response with component statuses."""
    components: Dict[str, Dict[str, Any]] = Field(
        default_factory=dict,
        description="Individual component health"
    )


def _basic_health() -> HealthResponse:
    return HealthResponse(
        status="healthy",
        timestamp=utc_now(),
        version=settings.app_version,
        environment=settings.app_env,
    )


# =============================================================================
# HEALTH ENDPOINTS
# =============================================================================

@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Basic health check",
    description="Quick health check for load balancers.",
)
async def health_check() -> HealthResponse:
    """Does not touch the database or Redis."""
    return _basic_health()


@router.get(
    "/health/ready",
    response_model=DetailedHealthResponse,
    summary="Readiness check",
    description="Check the database and Redis connections.",
)
async def readiness_check() -> DetailedHealthResponse:
    """
    Database failure degrades the service; Redis is optional and reported
    as ``disabled`` when not configured.
    """
    results = await DBFactory.health_check()
    overall_status = "healthy"

    components: Dict[str, Dict[str, Any]] = {
        "database": {
            "status": "healthy" if results["database"] else "unhealthy",
            "type": settings.db_type,
        },
    }
    if not results["database"]:
        overall_status = "degraded"

    db_adapter = DBFactory.get_db_adapter()
    if isinstance(db_adapter, PostgresAdapter):
        components["database"]["pool"] = await db_adapter.get_pool_status()

    if results["redis"] is None:
        components["redis"] = {"status": "disabled"}
    elif results["redis"]:
        components["redis"] = {"status": "healthy"}
    else:
        components["redis"] = {"status": "unhealthy"}
        overall_status = "degraded"

    return DetailedHealthResponse(
        status=overall_status,
        timestamp=utc_now(),
        version=settings.app_version,
        environment=settings.app_env,
        components=components,
    )


@router.get(
    "/health/live",
    response_model=HealthResponse,
    summary="Liveness check",
    description="Check if the service is alive.",
)
async def liveness_check() -> HealthResponse:
    return _basic_health()
