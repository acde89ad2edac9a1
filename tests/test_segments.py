"""Tests for hour segments and their shift payloads."""

from models.hours import HourSegment, WorkShift
from services.segments import (
    are_shift_payloads_equal,
    build_shift_payload,
    calculate_segments_total_minutes,
    create_empty_segment,
    is_valid_segment,
    segment_minutes,
    segments_from_work_shifts,
)


def test_empty_segments_get_unique_ids():
    first, second = create_empty_segment(), create_empty_segment()
    assert first.id != second.id
    assert (first.start, first.end) == ("", "")


def test_segment_minutes():
    assert segment_minutes(HourSegment(id="a", start="08:00", end="10:15")) == 135
    assert segment_minutes(HourSegment(id="b", start="10:00", end="10:00")) is None
    assert segment_minutes(HourSegment(id="c", start="25:00", end="26:00")) is None
    assert not is_valid_segment(HourSegment(id="d", start="08:00"))


def test_total_ignores_invalid_segments():
    segments = [
        HourSegment(id="a", start="08:00", end="09:30"),
        HourSegment(id="b", start="12:00", end="11:00"),
        HourSegment(id="c", start="15:00", end="16:00"),
    ]
    assert calculate_segments_total_minutes(segments) == 150


def test_segments_from_work_shifts():
    shifts = [
        WorkShift(id="s1", start_time="08:00", end_time="12:00", hours=4.0, description="Encofrado"),
        WorkShift(id="s2", start_time="13:00", end_time=None),
    ]
    segments = segments_from_work_shifts(shifts, "General")
    assert segments[0] == HourSegment(id="s1", start="08:00", end="12:00", total="4.0", description="Encofrado")
    assert segments[1] == HourSegment(id="s2", start="13:00", end="", total="", description="General")
    assert segments_from_work_shifts(None) == []


def test_shift_payload_drops_open_segments():
    payload = build_shift_payload(
        [
            HourSegment(id=" s1 ", start="08:00", end="12:00", description=" Encofrado "),
            HourSegment(id="s2", start="13:00"),
        ]
    )
    assert payload == [{"id": "s1", "workStart": "08:00", "workEnd": "12:00", "observations": "Encofrado"}]


def test_payload_equality_ignores_ids():
    a = [{"id": "s1", "workStart": "08:00", "workEnd": "12:00", "observations": "x"}]
    b = [{"id": "other", "workStart": "08:00", "workEnd": "12:00", "observations": "x "}]
    c = [{"id": "s1", "workStart": "08:00", "workEnd": "12:30", "observations": "x"}]
    assert are_shift_payloads_equal(a, b)
    assert not are_shift_payloads_equal(a, c)
    assert not are_shift_payloads_equal(a, [])
