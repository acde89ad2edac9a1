"""Liveness and upstream configuration check."""

from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from api.models.responses import HealthResponse
from core.api_client import is_schedule_api_configured
from core.config import API_VERSION

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Report version and whether the schedule API is configured.

    Returns 200 if healthy, 503 if the schedule API is not configured.
    """
    configured = is_schedule_api_configured()
    timestamp = datetime.now(timezone.utc).isoformat()

    if configured:
        return HealthResponse(
            status="healthy",
            version=API_VERSION,
            schedule_api_configured=True,
            timestamp=timestamp,
        )
    else:
        return JSONResponse(
            status_code=503,
            content=HealthResponse(
                status="unhealthy",
                version=API_VERSION,
                schedule_api_configured=False,
                timestamp=timestamp,
                error="Schedule API not configured",
            ).model_dump(),
        )
