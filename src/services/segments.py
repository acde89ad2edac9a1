"""
Hour segments: the start/end spans a user edits inside one grid cell.

Segments map to tracked WorkShifts on the way in and to the workShifts array
of the save payload on the way out.
"""

import uuid

from core.values import parse_clock_time, round_to_decimals
from models.hours import HourSegment, WorkShift, WorkShiftPayload


def create_empty_segment() -> HourSegment:
    return HourSegment(id=str(uuid.uuid4()))


def segment_minutes(segment: HourSegment) -> int | None:
    """Length in minutes, or None when the segment is not a valid span."""
    start = parse_clock_time(segment.start)
    end = parse_clock_time(segment.end)
    if start is None or end is None or end <= start:
        return None
    return end - start


def is_valid_segment(segment: HourSegment) -> bool:
    return segment_minutes(segment) is not None


def calculate_segments_total_minutes(segments: list[HourSegment]) -> int:
    return sum(segment_minutes(segment) or 0 for segment in segments)


def segments_from_work_shifts(shifts: list[WorkShift] | None, fallback_description: str = "") -> list[HourSegment]:
    segments = []
    for shift in shifts or []:
        segments.append(
            HourSegment(
                id=(shift.id or "").strip(),
                start=shift.start_time or "",
                end=shift.end_time or "",
                total=str(round_to_decimals(shift.hours)) if shift.hours else "",
                description=shift.description or fallback_description,
            )
        )
    return segments


def build_shift_payload(segments: list[HourSegment]) -> list[WorkShiftPayload]:
    """workShifts array for the save endpoint. Segments missing a bound are dropped."""
    payload: list[WorkShiftPayload] = []
    for segment in segments:
        work_start = (segment.start or "").strip()
        work_end = (segment.end or "").strip()
        if not work_start or not work_end:
            continue
        payload.append(
            {
                "id": (segment.id or "").strip(),
                "workStart": work_start,
                "workEnd": work_end,
                "observations": (segment.description or "").strip(),
            }
        )
    return payload


def are_shift_payloads_equal(a: list[WorkShiftPayload], b: list[WorkShiftPayload]) -> bool:
    """Compare two workShifts arrays by bounds and observations, ignoring ids."""
    if len(a) != len(b):
        return False
    return all(
        left["workStart"] == right["workStart"]
        and left["workEnd"] == right["workEnd"]
        and left["observations"].strip() == right["observations"].strip()
        for left, right in zip(a, b)
    )
