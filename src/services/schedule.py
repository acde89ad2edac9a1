"""
Daily aggregation of raw control-schedule records.

Turns the hour records (type 1) and note records (type 7) fetched for one
worker into a WorkerWeeklyData: per day totals, tracked hours per company,
the individual entries with their shifts, and the day notes.
"""

import logging
import math
from collections import defaultdict

from core.companies import (
    company_hours_keys,
    lookup_company_name,
    resolve_company,
    strip_diacritics,
)
from core.config import (
    ENTRY_DATE_OFFSET_HOURS,
    ENTRY_DESCRIPTION_SEPARATOR,
    NOTE_MAX_DEPTH,
)
from core.dates import record_day_key
from core.values import (
    extract_clock_time,
    parse_numeric,
    parse_time_to_minutes,
    pick_first_defined,
    pick_first_string,
)
from models.hours import (
    CompanyHours,
    DayNoteEntry,
    DayScheduleEntry,
    WorkerWeeklyData,
    WorkerWeeklyDayData,
    WorkShift,
)

logger = logging.getLogger(__name__)

# =============================================================================
# RECORD FIELD NAMES
# =============================================================================

ENTRY_DATE_KEYS = ["start", "date", "day", "createdAt"]
ENTRY_ID_KEYS = ["id", "controlScheduleId", "scheduleId", "registerId", "recordId"]
NOTE_ID_KEYS = ["id", "noteId", "identifier", "recordId"]
HOURS_VALUE_KEYS = ["value", "hours", "workedHours"]

COMPANY_ID_KEYS = ["companyId", "company_id", "company.id", "companyID", "companyIdContract"]
COMPANY_NAME_KEYS = ["companyName", "company_name", "company.name", "company"]

SHIFT_START_KEYS = ["workStart", "startTime", "start"]
SHIFT_END_KEYS = ["workEnd", "endTime", "end"]
SHIFT_ID_KEYS = ["id", "workShiftId"]
SHIFT_DESCRIPTION_KEYS = ["observations", "description"]

ENTRY_DESCRIPTION_KEYS = ["description", "note", "notes", "comment", "comments", "observation"]
NOTE_FIELD_KEYS = [
    "note", "notes", "comment", "comments",
    "observation", "observations", "description", "value",
]
NOTE_PREFERRED_KEYS = ["text", "note", "description", "value", "comment"]


def sort_key(value: str | None) -> str:
    """Case and accent insensitive ordering key for Spanish labels."""
    return strip_diacritics(value or "").casefold()


# =============================================================================
# TEXT EXTRACTION
# =============================================================================


def collect_texts(value, max_depth: int = NOTE_MAX_DEPTH) -> list[str]:
    """
    Walk an arbitrary JSON value and collect its text fragments in order.

    Objects are visited through their preferred text keys first, then through
    every remaining key. The walk is bounded by max_depth and never revisits
    a container.
    """
    found: list[str] = []
    visited: set[int] = set()

    def add(text: str) -> None:
        text = text.strip()
        if text and text not in found:
            found.append(text)

    def visit(node, depth: int) -> None:
        if node is None or isinstance(node, bool) or depth > max_depth:
            return
        if isinstance(node, str):
            add(node)
            return
        if isinstance(node, (int, float)):
            if math.isfinite(node):
                add(str(node))
            return
        if not isinstance(node, (list, dict)) or id(node) in visited:
            return
        visited.add(id(node))

        if isinstance(node, list):
            for item in node:
                visit(item, depth + 1)
            return

        for key in NOTE_PREFERRED_KEYS:
            if key in node:
                visit(node[key], depth + 1)
        for key, item in node.items():
            if key not in NOTE_PREFERRED_KEYS:
                visit(item, depth + 1)

    visit(value, 0)
    return found


def extract_record_texts(record: dict, keys: list[str]) -> list[str]:
    """Distinct text fragments found under the given top-level keys."""
    lines: list[str] = []
    for key in keys:
        for text in collect_texts(record.get(key)):
            if text not in lines:
                lines.append(text)
    return lines


def build_entry_description(record: dict) -> str | None:
    """Structured description followed by the observations, deduplicated."""
    chunks = extract_record_texts(record, ENTRY_DESCRIPTION_KEYS)
    for text in collect_texts(record.get("observations")):
        if text not in chunks:
            chunks.append(text)
    if not chunks:
        return None
    return ENTRY_DESCRIPTION_SEPARATOR.join(chunks)


# =============================================================================
# HOURS
# =============================================================================


def _positive_or_zero(value: float | None) -> float:
    if value is None or not math.isfinite(value) or value < 0:
        return 0.0
    return value


def parse_work_shifts(record: dict, entry_id: str) -> list[WorkShift] | None:
    """Parse the workShifts array. Returns None when the record has none."""
    raw_shifts = record.get("workShifts")
    if not isinstance(raw_shifts, list):
        return None

    shifts = []
    for index, raw in enumerate(raw_shifts):
        if not isinstance(raw, dict):
            continue
        start = extract_clock_time(pick_first_defined(raw, SHIFT_START_KEYS))
        end = extract_clock_time(pick_first_defined(raw, SHIFT_END_KEYS))
        hours = parse_numeric(pick_first_defined(raw, HOURS_VALUE_KEYS))
        if start is None and end is None and hours is None:
            continue

        if not hours:
            start_minutes = parse_time_to_minutes(start)
            end_minutes = parse_time_to_minutes(end)
            if start_minutes is not None and end_minutes is not None and end_minutes > start_minutes:
                hours = (end_minutes - start_minutes) / 60

        shift_id = pick_first_string(raw, SHIFT_ID_KEYS) or f"shift-{index + 1}-{entry_id}"
        description_lines = extract_record_texts(raw, SHIFT_DESCRIPTION_KEYS)
        shifts.append(
            WorkShift(
                id=shift_id,
                start_time=start,
                end_time=end,
                hours=hours,
                description=ENTRY_DESCRIPTION_SEPARATOR.join(description_lines) or None,
            )
        )
    return shifts


def resolve_entry_hours(record: dict, shifts: list[WorkShift] | None) -> float:
    """
    Hours of one record: explicit value first, otherwise the sum of its shifts.

    Negative and non-finite results become 0.
    """
    hours = _positive_or_zero(parse_numeric(pick_first_defined(record, HOURS_VALUE_KEYS)))
    if hours == 0 and shifts:
        hours = sum(_positive_or_zero(shift.hours) for shift in shifts)
    return _positive_or_zero(hours)


def resolve_record_day_key(record: dict, offset_hours: float = ENTRY_DATE_OFFSET_HOURS) -> str | None:
    """Day key from dateTime, falling back to start/date/day/createdAt."""
    day_key = record_day_key(record.get("dateTime"), offset_hours)
    if day_key is None:
        day_key = record_day_key(pick_first_string(record, ENTRY_DATE_KEYS), offset_hours)
    return day_key


def resolve_record_company(record: dict, company_lookup: dict[str, str] | None) -> tuple[str | None, str | None]:
    """Raw (id, name) of the company a record belongs to."""
    company_id = pick_first_string(record, COMPANY_ID_KEYS)
    company_name = pick_first_string(record, COMPANY_NAME_KEYS)
    if company_name is None and company_id is not None:
        company_name = lookup_company_name(company_lookup, company_id) or company_id
    return company_id, company_name


# =============================================================================
# BUILDER
# =============================================================================


class _DayAccumulator:
    def __init__(self):
        self.data = WorkerWeeklyDayData()
        self.notes: dict[str, DayNoteEntry] = {}

    def add_company_hours(self, company_id: str, company_name: str, hours: float) -> None:
        for key in company_hours_keys(company_id, company_name):
            bucket = self.data.company_hours.get(key)
            if bucket is None:
                bucket = CompanyHours(company_id=company_id, name=company_name)
                self.data.company_hours[key] = bucket
            bucket.hours += hours

    def is_empty(self) -> bool:
        return self.data.total_hours == 0 and not self.notes and not self.data.company_hours


def build_worker_weekly_data(
    hour_records: list[dict],
    note_records: list[dict] | None = None,
    company_lookup: dict[str, str] | None = None,
    *,
    offset_hours: float = ENTRY_DATE_OFFSET_HOURS,
) -> WorkerWeeklyData:
    """
    Aggregate one worker's raw schedule records per day.

    Records without a usable date are dropped. Days that end up with no
    hours, no notes and no companies are omitted from the result.
    """
    days: dict[str, _DayAccumulator] = defaultdict(_DayAccumulator)
    generated_ids: dict[str, int] = defaultdict(int)

    def next_id(prefix: str) -> str:
        generated_ids[prefix] += 1
        return f"{prefix}-{generated_ids[prefix]}"

    for record in hour_records or []:
        if not isinstance(record, dict):
            continue
        day_key = resolve_record_day_key(record, offset_hours)
        if day_key is None:
            logger.warning("Dropping schedule record without a usable date: %r", record.get("id"))
            continue

        day = days[day_key]
        entry_id = pick_first_string(record, ENTRY_ID_KEYS) or next_id(f"hours-{day_key}")
        shifts = parse_work_shifts(record, entry_id)
        hours = resolve_entry_hours(record, shifts)
        if hours > 0:
            day.data.total_hours += hours

        raw_id, raw_name = resolve_record_company(record, company_lookup)
        identity = resolve_company(raw_id, raw_name)
        day.add_company_hours(identity.id, identity.name, hours)

        description = build_entry_description(record)
        if hours > 0 or description:
            day.data.entries.append(
                DayScheduleEntry(
                    id=entry_id,
                    company_id=identity.id,
                    company_name=identity.name,
                    hours=hours,
                    description=description,
                    work_shifts=shifts,
                    raw=record,
                )
            )

    for record in note_records or []:
        if not isinstance(record, dict):
            continue
        day_key = resolve_record_day_key(record, offset_hours)
        if day_key is None:
            logger.warning("Dropping note record without a usable date: %r", record.get("id"))
            continue

        lines = extract_record_texts(record, NOTE_FIELD_KEYS)
        if not lines:
            continue

        day = days[day_key]
        note_id = pick_first_string(record, NOTE_ID_KEYS) or next_id(f"note-{day_key}")
        company_id, company_name = resolve_record_company(record, company_lookup)
        day.notes[note_id] = DayNoteEntry(
            id=note_id,
            text=lines[0],
            lines=lines,
            company_id=company_id,
            company_name=company_name,
            raw=record,
        )

    result = WorkerWeeklyData()
    for day_key in sorted(days):
        day = days[day_key]
        if day.is_empty():
            continue
        day.data.entries.sort(key=lambda entry: sort_key(entry.company_name))
        day.data.note_entries = list(day.notes.values())
        result.days[day_key] = day.data
    return result


def tracked_company_hours(day_data: WorkerWeeklyDayData | None, company_id: str, company_name: str) -> float | None:
    """Tracked hours for a company on a day, matching by id first, then by name."""
    if day_data is None:
        return None
    for key in company_hours_keys(company_id, company_name):
        bucket = day_data.company_hours.get(key)
        if bucket is not None:
            return bucket.hours
    return None


def day_note_texts(day_data: WorkerWeeklyDayData | None) -> list[str]:
    """Distinct note texts of a day, in order."""
    texts: list[str] = []
    if day_data is None:
        return texts
    for note in day_data.note_entries:
        text = (note.text or "").strip()
        if text and text not in texts:
            texts.append(text)
    return texts
