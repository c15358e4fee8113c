"""Health check endpoints."""

from fastapi import APIRouter, status
from pydantic import BaseModel

from clinic_gateway.config import settings
from clinic_gateway.core.redis_client import check_redis_connection
from clinic_gateway.dependencies import ClinicClient

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    environment: str


class DetailedHealthResponse(HealthResponse):
    """Detailed health check response model."""

    clinic_api: str
    redis: str


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Basic health check",
)
async def health_check() -> HealthResponse:
    """Basic health check endpoint."""
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment,
    )


@router.get(
    "/health/detailed",
    response_model=DetailedHealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Detailed health check",
)
async def detailed_health_check(clinic: ClinicClient) -> DetailedHealthResponse:
    """
    Detailed health check with clinic API and Redis status.

    Returns:
        Detailed health status including dependencies
    """
    clinic_healthy = await clinic.check_connection()
    redis_healthy = await check_redis_connection()

    return DetailedHealthResponse(
        status="healthy" if clinic_healthy and redis_healthy else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        clinic_api="healthy" if clinic_healthy else "unhealthy",
        redis="healthy" if redis_healthy else "unhealthy",
    )


@router.get(
    "/ping",
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Simple ping",
)
async def ping() -> dict[str, str]:
    """Simple ping endpoint."""
    return {"message": "pong"}
