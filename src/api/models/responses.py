"""Response bodies of the hours registry API."""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Body of GET /health."""

    status: str  # "healthy" or "unhealthy"
    version: str
    schedule_api_configured: bool
    timestamp: str  # ISO 8601 UTC
    error: str | None = None


class ErrorResponse(BaseModel):
    """Error body shared by every endpoint."""

    error: str
    code: str
    details: list[str] = []


class ErrorCodes:
    """Values of the `code` field in error bodies."""

    INVALID_REQUEST = "INVALID_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NO_EXPORT_DATA = "NO_EXPORT_DATA"
    NO_CHANGES = "NO_CHANGES"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AssignmentTotal(BaseModel):
    assignment_id: str
    worker_id: str
    worker_name: str
    company_id: str
    company_name: str
    total: float
    hours_by_day: dict[str, float]


class GroupTotal(BaseModel):
    key: str
    label: str
    total: float
    totals_by_day: dict[str, float]


class TotalsResponse(BaseModel):
    """Row, column and group totals for a range."""

    start: str
    end: str
    rows: list[AssignmentTotal]
    day_totals: dict[str, float]
    groups: list[GroupTotal]
    grand_total: float
    failed_worker_ids: list[str] = []
    warning: str | None = None


class SaveResponse(BaseModel):
    items: int
    workers: int
    sent: bool
    payload: dict[str, list[dict]] = {}
