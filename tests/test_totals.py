"""Tests for cell, row, column and group totals."""

from datetime import date

import pytest

from core.dates import build_day_descriptors
from models.hours import (
    Assignment,
    AssignmentTotalsContext,
    CompanyHours,
    WorkerWeeklyData,
    WorkerWeeklyDayData,
)
from services.totals import (
    calculate_group_totals,
    calculate_row_total,
    calculate_totals,
    has_manual_value,
    resolve_hour,
)


def _by_id(assignments, assignment_id):
    return next(a for a in assignments if a.id == assignment_id)


def test_generated_assignment_ids(assignments):
    assert [a.id for a in assignments] == ["c1-w1", "c2-w1", "sin-empresa-w2-w2"]
    assert assignments[2].company_id == "sin-empresa"


def test_tracked_hours(assignments, week_context):
    ana_norte = _by_id(assignments, "c1-w1")
    assert resolve_hour(ana_norte, "2024-01-01", week_context) == 4.0
    assert resolve_hour(ana_norte, "2024-01-02", week_context) == 0.0
    assert calculate_row_total(ana_norte, week_context, []) == 0


def test_manual_value_wins_even_when_zero(assignments, week_context, days):
    ana_norte = _by_id(assignments, "c1-w1")
    ana_norte.hours["2024-01-01"] = "0"
    ana_norte.hours["2024-01-03"] = "  "

    assert has_manual_value(ana_norte, "2024-01-01")
    assert not has_manual_value(ana_norte, "2024-01-03")
    assert resolve_hour(ana_norte, "2024-01-01", week_context) == 0.0
    assert resolve_hour(ana_norte, "2024-01-03", week_context) == 2.5
    assert calculate_row_total(ana_norte, week_context, days) == 2.5


def test_worker_without_data(week_context):
    assignment = Assignment(id="x", worker_id="nobody", worker_name="", company_id="c1", company_name="Obras Norte")
    assert resolve_hour(assignment, "2024-01-01", week_context) == 0.0


def test_column_totals_are_zero_filled(assignments, week_context, days):
    totals = calculate_totals(assignments, week_context, days)
    assert list(totals) == [d.date_key for d in days]
    assert totals["2024-01-01"] == 7.5
    assert totals["2024-01-02"] == 6.0
    assert totals["2024-01-03"] == 2.5
    assert totals["2024-01-07"] == 0.0


def test_group_by_company(assignments, week_context, days):
    groups = calculate_group_totals(assignments, week_context, days, "company")
    assert [(g.label, g.total) for g in groups] == [
        ("Obras Norte", 6.5),
        ("Reformas Sur", 3.5),
        ("Sin empresa asignada", 6.0),
    ]


def test_group_by_worker(assignments, week_context, days):
    groups = calculate_group_totals(assignments, week_context, days, "worker")
    assert [(g.label, g.total, len(g.assignments)) for g in groups] == [
        ("Ana López", 10.0, 2),
        ("Bruno Díaz", 6.0, 1),
    ]


def test_unknown_grouping(assignments, week_context, days):
    with pytest.raises(ValueError):
        calculate_group_totals(assignments, week_context, days, "day")


def _tracked_context(worker_id, hours_by_day):
    days = {
        date_key: WorkerWeeklyDayData(
            total_hours=hours,
            company_hours={"id:c1": CompanyHours(company_id="c1", name="Obras Norte", hours=hours)},
        )
        for date_key, hours in hours_by_day.items()
    }
    return AssignmentTotalsContext(worker_week_data={worker_id: WorkerWeeklyData(days=days)})


def test_clearing_manual_value_falls_back_to_tracked():
    context = _tracked_context("w1", {"2024-01-01": 5.0})
    assignment = Assignment(
        id="c1-w1", worker_id="w1", worker_name="Ana", company_id="c1", company_name="Obras Norte",
        hours={"2024-01-01": "3,5"},
    )
    assert resolve_hour(assignment, "2024-01-01", context) == 3.5

    assignment.hours["2024-01-01"] = ""
    assert resolve_hour(assignment, "2024-01-01", context) == 5.0


def test_row_total_mixes_manual_and_tracked():
    days = build_day_descriptors(date(2024, 1, 1), date(2024, 1, 3))
    context = _tracked_context("w1", {"2024-01-01": 0.0, "2024-01-02": 4.0, "2024-01-03": 0.0})
    assignment = Assignment(
        id="c1-w1", worker_id="w1", worker_name="Ana", company_id="c1", company_name="Obras Norte",
        hours={"2024-01-01": "2", "2024-01-02": "", "2024-01-03": "1,5"},
    )
    assert calculate_row_total(assignment, context, days) == 7.5


def _context_with_buckets(company_hours):
    day = WorkerWeeklyDayData(total_hours=sum(b.hours for b in company_hours.values()), company_hours=company_hours)
    return AssignmentTotalsContext(worker_week_data={"w1": WorkerWeeklyData(days={"2024-01-01": day})})


def test_tracked_hours_fall_back_to_company_name():
    context = _context_with_buckets({
        "id:c2": CompanyHours(company_id="c2", name="Reformas Sur", hours=3.0),
        "name:reformas sur": CompanyHours(company_id="c2", name="Reformas Sur", hours=3.0),
    })
    assignment = Assignment(
        id="c9-w1", worker_id="w1", worker_name="Ana", company_id="c9", company_name="  reformas SUR ",
    )
    assert resolve_hour(assignment, "2024-01-01", context) == 3.0


def test_tracked_hours_prefer_company_id():
    context = _context_with_buckets({
        "id:c1": CompanyHours(company_id="c1", name="Obras Norte", hours=4.0),
        "name:obras norte": CompanyHours(company_id="c7", name="Obras Norte", hours=1.5),
    })
    assignment = Assignment(
        id="c1-w1", worker_id="w1", worker_name="Ana", company_id="c1", company_name="Obras Norte",
    )
    assert resolve_hour(assignment, "2024-01-01", context) == 4.0

    assignment.company_id = "c8"
    assert resolve_hour(assignment, "2024-01-01", context) == 1.5
