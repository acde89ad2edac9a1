"""
Data models for the hours registry.

Dataclasses for the in-memory model, TypedDict for payloads sent back to the
schedule API.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import NotRequired, TypedDict


@dataclass(frozen=True)
class DayDescriptor:
    """One visible calendar day."""
    date: date
    date_key: str  # YYYY-MM-DD
    label: str  # "Lunes"
    short_label: str  # "Lun"
    compact_label: str  # "L"
    day_of_month: int


@dataclass(frozen=True)
class CompanyIdentity:
    id: str
    name: str


@dataclass
class Assignment:
    """A (worker, company) row of the hours grid with manual per-day values."""
    id: str
    worker_id: str
    worker_name: str
    company_id: str
    company_name: str
    hours: dict[str, str] = field(default_factory=dict)  # date_key -> raw input


@dataclass
class WorkShift:
    id: str
    start_time: str | None = None  # HH:MM
    end_time: str | None = None
    hours: float | None = None
    description: str | None = None


@dataclass
class DayScheduleEntry:
    id: str
    company_id: str
    company_name: str
    hours: float
    description: str | None = None
    work_shifts: list[WorkShift] | None = None
    raw: dict | None = None


@dataclass
class DayNoteEntry:
    id: str
    text: str
    lines: list[str] = field(default_factory=list)
    origin: str = "note"
    company_id: str | None = None
    company_name: str | None = None
    raw: dict | None = None


@dataclass
class CompanyHours:
    company_id: str
    name: str
    hours: float = 0.0


@dataclass
class WorkerWeeklyDayData:
    total_hours: float = 0.0
    company_hours: dict[str, CompanyHours] = field(default_factory=dict)
    entries: list[DayScheduleEntry] = field(default_factory=list)
    note_entries: list[DayNoteEntry] = field(default_factory=list)


@dataclass
class WorkerWeeklyData:
    days: dict[str, WorkerWeeklyDayData] = field(default_factory=dict)


@dataclass
class AssignmentTotalsContext:
    worker_week_data: dict[str, WorkerWeeklyData] = field(default_factory=dict)


@dataclass
class HourSegment:
    """A user-edited time span within one cell. Times are 'HH:MM' strings."""
    id: str
    start: str = ""
    end: str = ""
    total: str = ""
    description: str = ""


# =============================================================================
# WORKER DIRECTORY
# =============================================================================


@dataclass
class WorkerContract:
    id: str
    company_id: str | None = None
    company_name: str | None = None
    hourly_rate: float | None = None
    has_contract: bool = False
    relation_type: int | None = None
    label: str | None = None


@dataclass
class CompanyRelation:
    company_id: str | None = None
    company_name: str | None = None
    relation_id: str | None = None


@dataclass
class Worker:
    id: str
    name: str
    hourly_rate: float | None = None
    companies: str | None = None  # raw fallback company id
    company_names: list[str] = field(default_factory=list)
    company_contracts: dict[str, list[WorkerContract]] = field(default_factory=dict)
    company_relations: list[CompanyRelation] = field(default_factory=list)


# =============================================================================
# SAVE-BACK PAYLOAD
# =============================================================================


class WorkShiftPayload(TypedDict):
    id: str
    workStart: str
    workEnd: str
    observations: str


class ControlScheduleSaveItem(TypedDict):
    """One item of a POST /controlSchedule/save body."""
    id: str
    dateTime: str
    parameterId: str
    controlScheduleType: int
    value: NotRequired[str]
    companyId: NotRequired[str]
    workShifts: NotRequired[list[WorkShiftPayload]]
