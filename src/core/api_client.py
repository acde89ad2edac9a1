"""
HTTP client setup for the external schedule API.
"""

import httpx

from core.config import SCHEDULE_API_TIMEOUT, SCHEDULE_API_TOKEN, SCHEDULE_API_URL


def build_api_endpoint(base_url: str, path: str) -> str:
    """Join base URL and path, inserting /api unless the base already has it."""
    base = base_url.strip().rstrip("/")
    normalized_path = path if path.startswith("/") else f"/{path}"
    lowered = base.lower()
    if lowered.endswith("/api") or "/api/" in lowered:
        return f"{base}{normalized_path}"
    return f"{base}/api{normalized_path}"


def build_headers(token: str | None) -> dict[str, str]:
    headers = {
        "Content-Type": "application/json",
        "Accept": "application/json",
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def is_schedule_api_configured() -> bool:
    return bool(SCHEDULE_API_URL and SCHEDULE_API_TOKEN)


def create_schedule_client(
    token: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    timeout: float = SCHEDULE_API_TIMEOUT,
) -> httpx.AsyncClient:
    """
    Create an AsyncClient for the schedule API.

    The caller owns the client and should use it as an async context manager.
    """
    return httpx.AsyncClient(
        headers=build_headers(token if token is not None else SCHEDULE_API_TOKEN),
        timeout=timeout,
        transport=transport,
    )
