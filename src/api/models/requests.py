"""Pydantic request models for API endpoints."""

from datetime import date
from typing import Literal

from pydantic import BaseModel, Field, model_validator


class AssignmentInput(BaseModel):
    """A grid row as edited by the client, with manual per-day values."""

    id: str | None = None
    worker_id: str
    worker_name: str = ""
    company_id: str | None = None
    company_name: str | None = None
    hours: dict[str, str] = Field(default_factory=dict, description="date key -> typed value")


class HoursRangeRequest(BaseModel):
    """Date range plus optional worker filter and grid edits."""

    start: date
    end: date
    worker_ids: list[str] | None = Field(
        default=None, description="Restrict to these workers (default: all)"
    )
    assignments: list[AssignmentInput] | None = Field(
        default=None, description="Grid rows; generated from the directory when omitted"
    )

    @model_validator(mode="after")
    def order_range(self):
        if self.start > self.end:
            self.start, self.end = self.end, self.start
        return self


class TotalsRequest(HoursRangeRequest):
    group_by: Literal["company", "worker"] = "company"


class ExportRequest(HoursRangeRequest):
    detail_level: Literal["summary", "daily", "shifts"] = "shifts"


class SegmentInput(BaseModel):
    id: str = ""
    start: str = ""
    end: str = ""
    description: str = ""


class SegmentEdit(BaseModel):
    """Segments of one cell as left by the user (empty list clears them)."""

    assignment_id: str
    date_key: str
    segments: list[SegmentInput] = Field(default_factory=list)


class NoteEdit(BaseModel):
    worker_id: str
    date_key: str
    text: str = ""


class SaveRequest(HoursRangeRequest):
    segments: list[SegmentEdit] = Field(default_factory=list)
    notes: list[NoteEdit] = Field(default_factory=list)
    dry_run: bool = False
