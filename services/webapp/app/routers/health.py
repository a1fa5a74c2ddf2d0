# =============================================================================
# Health Check Router
# =============================================================================
# Endpoints for container health checks and readiness probes.
# =============================================================================

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.services.job_service import get_job_service

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str


class ReadyResponse(BaseModel):
    """Readiness check response model."""

    status: str
    services: dict[str, str]


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Basic health check endpoint.

    Returns 200 if the service is running.
    """
    from app import __version__

    return HealthResponse(status="healthy", version=__version__)


@router.get("/ready", response_model=ReadyResponse)
async def readiness_check():
    """
    Readiness check endpoint.

    Returns 503 when the job status store is unreachable.
    """
    mongodb_ok = get_job_service().ping()
    response = ReadyResponse(
        status="ready" if mongodb_ok else "not_ready",
        services={"mongodb": "ok" if mongodb_ok else "unavailable"},
    )
    if not mongodb_ok:
        return JSONResponse(status_code=503, content=response.model_dump())
    return response
