"""FastAPI dependencies for authentication and shared resources."""

import secrets
from collections.abc import AsyncIterator
from dataclasses import dataclass

import httpx
from fastapi import Header, HTTPException, status

from core.api_client import create_schedule_client, is_schedule_api_configured
from core.config import HOURS_API_KEY, SCHEDULE_API_URL


@dataclass
class ScheduleApi:
    """HTTP client bound to the schedule API base URL."""

    client: httpx.AsyncClient
    base_url: str


async def verify_api_key(x_api_key: str = Header(..., alias="X-API-Key")) -> str:
    """
    Verify API key from X-API-Key header.

    Raises:
        HTTPException: 401 if key is missing or invalid
    """
    if not HOURS_API_KEY:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "API key not configured on server",
                "code": "INTERNAL_ERROR",
                "details": [],
            },
        )

    if not secrets.compare_digest(x_api_key, HOURS_API_KEY):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": "Invalid or missing API key",
                "code": "UNAUTHORIZED",
                "details": [],
            },
        )

    return x_api_key


async def get_schedule_api() -> AsyncIterator[ScheduleApi]:
    """
    Yield a schedule API client for the duration of a request.

    Raises:
        HTTPException: 503 if the schedule API is not configured
    """
    if not is_schedule_api_configured():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "error": "Schedule API not configured on server",
                "code": "SERVICE_UNAVAILABLE",
                "details": ["Set SCHEDULE_API_URL and SCHEDULE_API_TOKEN"],
            },
        )

    async with create_schedule_client() as client:
        yield ScheduleApi(client=client, base_url=SCHEDULE_API_URL)
