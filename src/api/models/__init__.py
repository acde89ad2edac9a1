"""API Pydantic models."""

from .requests import ExportRequest, SaveRequest, TotalsRequest
from .responses import ErrorCodes, ErrorResponse, HealthResponse, SaveResponse, TotalsResponse

__all__ = [
    "HealthResponse",
    "ErrorResponse",
    "ErrorCodes",
    "TotalsResponse",
    "SaveResponse",
    "TotalsRequest",
    "ExportRequest",
    "SaveRequest",
]
