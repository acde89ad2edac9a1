"""Tests for save-back payloads."""

import pytest

from models.hours import DayNoteEntry, HourSegment
from services.save_payload import (
    SavePayload,
    build_cell_save_item,
    build_note_save_item,
    build_save_payload,
)

TRACKED_SHIFT = {"id": "s1", "workStart": "08:00", "workEnd": "12:00", "observations": "Encofrado"}


@pytest.fixture
def ana_norte(assignments):
    return assignments[0]


class TestCellSaveItem:
    def test_unchanged_cell(self, ana_norte, week_context):
        assert build_cell_save_item(ana_norte, "2024-01-01", week_context) is None

    def test_update_keeps_tracked_shifts(self, ana_norte, week_context):
        ana_norte.hours["2024-01-01"] = "6"
        item = build_cell_save_item(ana_norte, "2024-01-01", week_context)
        assert item == {
            "id": "r1",
            "dateTime": "2024-01-01T00:00:00+00:00",
            "parameterId": "w1",
            "controlScheduleType": 1,
            "value": "6.00",
            "workShifts": [TRACKED_SHIFT],
            "companyId": "c1",
        }

    def test_same_hours_is_not_a_change(self, ana_norte, week_context):
        ana_norte.hours["2024-01-01"] = "4,005"
        assert build_cell_save_item(ana_norte, "2024-01-01", week_context) is None

    def test_zero_deletes_entry(self, ana_norte, week_context):
        ana_norte.hours["2024-01-03"] = "0"
        item = build_cell_save_item(ana_norte, "2024-01-03", week_context)
        assert item["id"] == "r3"
        assert item["value"] == "0"
        assert item["workShifts"] == []

    def test_cleared_input_deletes_entry(self, ana_norte, week_context):
        ana_norte.hours["2024-01-03"] = ""
        item = build_cell_save_item(ana_norte, "2024-01-03", week_context)
        assert (item["id"], item["value"], item["workShifts"]) == ("r3", "0", [])

    def test_create_on_empty_day(self, ana_norte, week_context):
        ana_norte.hours["2024-01-05"] = "2,5"
        item = build_cell_save_item(ana_norte, "2024-01-05", week_context)
        assert item == {
            "id": "",
            "dateTime": "2024-01-05T00:00:00+00:00",
            "parameterId": "w1",
            "controlScheduleType": 1,
            "value": "2.50",
            "companyId": "c1",
        }

    def test_zero_on_empty_day_is_nothing(self, ana_norte, week_context):
        ana_norte.hours["2024-01-05"] = "0"
        assert build_cell_save_item(ana_norte, "2024-01-05", week_context) is None

    def test_unassigned_has_no_company(self, assignments, week_context):
        bruno = assignments[2]
        bruno.hours["2024-01-04"] = "3"
        item = build_cell_save_item(bruno, "2024-01-04", week_context)
        assert "companyId" not in item
        assert item["value"] == "3.00"

    def test_create_from_segments(self, assignments, week_context):
        ana_sur = assignments[1]
        segments = [HourSegment(id="x", start="09:00", end="10:30")]
        item = build_cell_save_item(ana_sur, "2024-01-02", week_context, segments)
        assert item["id"] == ""
        assert item["value"] == "1.50"
        assert item["workShifts"] == [
            {"id": "x", "workStart": "09:00", "workEnd": "10:30", "observations": ""}
        ]
        assert item["companyId"] == "c2"

    def test_clearing_segments_deletes_entry(self, ana_norte, week_context):
        item = build_cell_save_item(ana_norte, "2024-01-01", week_context, [])
        assert (item["id"], item["value"], item["workShifts"]) == ("r1", "0", [])

    def test_changed_segments_update(self, ana_norte, week_context):
        segments = [HourSegment(id="s1", start="08:00", end="13:00", description="Encofrado")]
        item = build_cell_save_item(ana_norte, "2024-01-01", week_context, segments)
        assert item["id"] == "r1"
        assert "value" not in item
        assert item["workShifts"][0]["workEnd"] == "13:00"

    def test_identical_segments_are_not_a_change(self, ana_norte, week_context):
        segments = [HourSegment(id="new", start="08:00", end="12:00", description="Encofrado")]
        assert build_cell_save_item(ana_norte, "2024-01-01", week_context, segments) is None


class TestNoteSaveItem:
    baseline = [DayNoteEntry(id="n1", text="Lluvia por la tarde")]

    def test_update(self):
        item = build_note_save_item("w1", "2024-01-01", self.baseline, [DayNoteEntry(id="", text="Lluvia todo el día")])
        assert item == {
            "id": "n1",
            "dateTime": "2024-01-01T00:00:00+00:00",
            "parameterId": "w1",
            "controlScheduleType": 7,
            "value": "Lluvia todo el día",
        }

    def test_delete(self):
        item = build_note_save_item("w1", "2024-01-01", self.baseline, [])
        assert (item["id"], item["value"]) == ("n1", "")

    def test_create(self):
        item = build_note_save_item("w1", "2024-01-02", [], [DayNoteEntry(id="", text="Médico")])
        assert (item["id"], item["value"]) == ("", "Médico")

    def test_unchanged(self):
        assert build_note_save_item("w1", "2024-01-01", self.baseline, [DayNoteEntry(id="", text=" Lluvia por la tarde ")]) is None


def test_build_save_payload_groups_by_worker(assignments, week_context, days):
    assignments[0].hours["2024-01-01"] = "6"
    assignments[2].hours["2024-01-04"] = "3"
    payload = build_save_payload(
        assignments,
        week_context,
        days,
        note_drafts={("w1", "2024-01-01"): []},
    )

    assert payload.item_count == 3
    assert sorted(payload.by_worker) == ["w1", "w2"]
    assert [item["controlScheduleType"] for item in payload.ordered("w1")] == [1, 7]


def test_no_changes(assignments, week_context, days):
    assert build_save_payload(assignments, week_context, days).item_count == 0


def test_ordered_sorts_by_type():
    payload = SavePayload()
    payload.add("w1", {"id": "", "dateTime": "", "parameterId": "w1", "controlScheduleType": 7, "value": ""})
    payload.add("w1", {"id": "", "dateTime": "", "parameterId": "w1", "controlScheduleType": 1, "value": "1"})
    assert [i["controlScheduleType"] for i in payload.ordered("w1")] == [1, 7]
    assert payload.ordered("missing") == []
