"""
Save-back payloads for the schedule API.

Compares the edited grid (manual values, edited segments, edited notes)
against the tracked data and emits only the control-schedule items that
create, update or delete something.
"""

from dataclasses import dataclass, field

from core.companies import is_unassigned_company
from core.config import (
    ENTRY_DESCRIPTION_SEPARATOR,
    HOURS_COMPARISON_EPSILON,
    SCHEDULE_TYPE_HOURS,
    SCHEDULE_TYPE_NOTE,
)
from core.dates import format_date_key_to_api_datetime
from core.values import parse_hour
from models.hours import (
    Assignment,
    AssignmentTotalsContext,
    ControlScheduleSaveItem,
    DayDescriptor,
    DayNoteEntry,
    HourSegment,
)
from services.assignments import resolve_entries_for_assignment
from services.schedule import collect_texts
from services.segments import (
    are_shift_payloads_equal,
    build_shift_payload,
    calculate_segments_total_minutes,
    segments_from_work_shifts,
)

# assignment id -> date key -> segments as last edited
SegmentsByAssignment = dict[str, dict[str, list[HourSegment]]]
# (worker id, date key) -> notes as last edited
NoteDrafts = dict[tuple[str, str], list[DayNoteEntry]]


@dataclass
class SavePayload:
    """Items to POST per worker, plus a count for quick checks."""
    by_worker: dict[str, list[ControlScheduleSaveItem]] = field(default_factory=dict)

    def add(self, worker_id: str, item: ControlScheduleSaveItem) -> None:
        self.by_worker.setdefault(worker_id, []).append(item)

    @property
    def item_count(self) -> int:
        return sum(len(items) for items in self.by_worker.values())

    def ordered(self, worker_id: str) -> list[ControlScheduleSaveItem]:
        """Items of a worker sorted by controlScheduleType, as the API expects."""
        return sorted(self.by_worker.get(worker_id, []), key=lambda item: item["controlScheduleType"])


def _hours_equal(a: float, b: float) -> bool:
    return abs(a - b) < HOURS_COMPARISON_EPSILON


def build_cell_save_item(
    assignment: Assignment,
    date_key: str,
    context: AssignmentTotalsContext,
    stored_segments: list[HourSegment] | None = None,
) -> ControlScheduleSaveItem | None:
    """
    Save item for one (assignment, day) cell, or None when nothing changed.

    stored_segments is None when the user never opened the cell's segment
    editor, and a (possibly empty) list when they did.
    """
    raw = assignment.hours.get(date_key)
    manual_input_exists = date_key in assignment.hours
    trimmed = raw.strip() if isinstance(raw, str) else ""
    manual_input_provided = bool(trimmed)
    hours_value = parse_hour(trimmed) if manual_input_provided else 0.0

    week_data = context.worker_week_data.get(assignment.worker_id)
    day_data = week_data.days.get(date_key) if week_data else None
    existing_entries = resolve_entries_for_assignment(day_data, assignment)
    primary_entry = existing_entries[0] if existing_entries else None
    existing_hours = primary_entry.hours if primary_entry else 0.0

    observation = ""
    if primary_entry and primary_entry.raw:
        observation = ENTRY_DESCRIPTION_SEPARATOR.join(collect_texts(primary_entry.raw.get("observations")))
    fallback_payload = build_shift_payload(
        segments_from_work_shifts(primary_entry.work_shifts if primary_entry else None, observation)
    )

    edited = stored_segments is not None
    stored_payload = build_shift_payload(stored_segments) if edited else []
    new_payload = stored_payload if edited else fallback_payload

    segments_changed = edited and not are_shift_payloads_equal(fallback_payload, new_payload)
    removal_via_segments = edited and not stored_payload and bool(fallback_payload)
    manual_input_removed = (
        manual_input_exists
        and not manual_input_provided
        and primary_entry is not None
        and not stored_payload
        and not fallback_payload
    )

    should_create = primary_entry is None and (
        (manual_input_provided and hours_value > 0) or (edited and bool(stored_payload))
    )

    if primary_entry is not None:
        hours_changed = manual_input_provided and not _hours_equal(existing_hours, hours_value)
    else:
        hours_changed = manual_input_provided and hours_value > 0

    is_deletion = primary_entry is not None and (
        (manual_input_provided and hours_value <= 0 and not (stored_payload if edited else fallback_payload))
        or manual_input_removed
        or (not manual_input_provided and removal_via_segments)
    )

    should_update = primary_entry is not None and (hours_changed or segments_changed or is_deletion)
    if not should_create and not should_update:
        return None

    item: ControlScheduleSaveItem = {
        "id": (primary_entry.id.strip() if primary_entry else ""),
        "dateTime": format_date_key_to_api_datetime(date_key),
        "parameterId": assignment.worker_id,
        "controlScheduleType": SCHEDULE_TYPE_HOURS,
    }

    if manual_input_provided:
        item["value"] = f"{hours_value:.2f}" if hours_value > 0 else "0"
    elif is_deletion:
        item["value"] = "0"
    elif primary_entry is None and stored_payload:
        minutes = calculate_segments_total_minutes(stored_segments)
        if minutes > 0:
            item["value"] = f"{minutes / 60:.2f}"

    if is_deletion:
        item["workShifts"] = []
    elif new_payload:
        item["workShifts"] = new_payload
    elif segments_changed:
        item["workShifts"] = []

    company_id = assignment.company_id.strip()
    if company_id and not is_unassigned_company(company_id, assignment.company_name):
        item["companyId"] = company_id

    return item


def build_note_save_item(
    worker_id: str,
    date_key: str,
    baseline: list[DayNoteEntry],
    edited: list[DayNoteEntry],
) -> ControlScheduleSaveItem | None:
    """
    Save item for a day's note, or None when the text did not change.

    Only the first note (by id) of each side is compared; an emptied note is
    sent with an empty value.
    """
    def normalize(notes: list[DayNoteEntry]) -> list[tuple[str, str]]:
        pairs = [((note.id or ""), (note.text or "").strip()) for note in notes]
        return sorted((p for p in pairs if p[1]), key=lambda p: p[0])

    baseline_notes = normalize(baseline)
    edited_notes = normalize(edited)
    baseline_note = baseline_notes[0] if baseline_notes else None
    edited_note = edited_notes[0] if edited_notes else None

    def item(note_id: str, value: str) -> ControlScheduleSaveItem:
        return {
            "id": note_id,
            "dateTime": format_date_key_to_api_datetime(date_key),
            "parameterId": worker_id,
            "controlScheduleType": SCHEDULE_TYPE_NOTE,
            "value": value,
        }

    if baseline_note and not edited_note:
        return item(baseline_note[0], "")
    if edited_note and not baseline_note:
        return item("", edited_note[1])
    if edited_note and baseline_note and edited_note[1] != baseline_note[1]:
        return item(baseline_note[0], edited_note[1])
    return None


def build_save_payload(
    assignments: list[Assignment],
    context: AssignmentTotalsContext,
    days: list[DayDescriptor],
    segments_by_assignment: SegmentsByAssignment | None = None,
    note_drafts: NoteDrafts | None = None,
) -> SavePayload:
    """Collect every changed cell and note into per-worker save items."""
    segments_by_assignment = segments_by_assignment or {}
    payload = SavePayload()

    for assignment in assignments:
        stored = segments_by_assignment.get(assignment.id, {})
        for day in days:
            item = build_cell_save_item(assignment, day.date_key, context, stored.get(day.date_key))
            if item is not None:
                payload.add(assignment.worker_id, item)

    for (worker_id, date_key), edited in (note_drafts or {}).items():
        week_data = context.worker_week_data.get(worker_id)
        day_data = week_data.days.get(date_key) if week_data else None
        baseline = day_data.note_entries if day_data else []
        item = build_note_save_item(worker_id, date_key, baseline, edited)
        if item is not None:
            payload.add(worker_id, item)

    return payload
