"""
Assignment totals: per cell, per row, per day column and per group.

A cell's value is the manual entry when one was typed, otherwise the hours
tracked for that company on that day. Everything here is a pure reduction.
"""

from dataclasses import dataclass, field

from core.values import parse_hour
from models.hours import Assignment, AssignmentTotalsContext, DayDescriptor
from services.schedule import sort_key, tracked_company_hours


@dataclass
class GroupTotals:
    """Totals for the assignments sharing a company or a worker."""
    key: str
    label: str
    assignments: list[Assignment] = field(default_factory=list)
    totals_by_day: dict[str, float] = field(default_factory=dict)
    total: float = 0.0


def has_manual_value(assignment: Assignment, date_key: str) -> bool:
    raw = assignment.hours.get(date_key)
    return isinstance(raw, str) and raw.strip() != ""


def resolve_hour(assignment: Assignment, date_key: str, context: AssignmentTotalsContext) -> float:
    """
    Effective hours of one cell.

    A non-empty manual value always wins, even if it parses to 0 or is
    negative. Otherwise the tracked hours for the company are used, looked up
    by id and then by name.
    """
    if has_manual_value(assignment, date_key):
        return parse_hour(assignment.hours[date_key])

    week_data = context.worker_week_data.get(assignment.worker_id)
    if week_data is None:
        return 0.0
    tracked = tracked_company_hours(
        week_data.days.get(date_key),
        assignment.company_id,
        assignment.company_name,
    )
    return tracked if tracked is not None else 0.0


def calculate_row_total(
    assignment: Assignment,
    context: AssignmentTotalsContext,
    days: list[DayDescriptor],
) -> float:
    return sum(resolve_hour(assignment, day.date_key, context) for day in days)


def calculate_totals(
    assignments: list[Assignment],
    context: AssignmentTotalsContext,
    days: list[DayDescriptor],
) -> dict[str, float]:
    """Column totals for every visible day, zero-filled."""
    totals = {day.date_key: 0.0 for day in days}
    for assignment in assignments:
        for day in days:
            totals[day.date_key] += resolve_hour(assignment, day.date_key, context)
    return totals


def calculate_group_totals(
    assignments: list[Assignment],
    context: AssignmentTotalsContext,
    days: list[DayDescriptor],
    group_by: str = "company",
) -> list[GroupTotals]:
    """
    Group assignments by company or by worker and total each group.

    Groups are sorted by label, case and accent insensitive.
    """
    if group_by not in ("company", "worker"):
        raise ValueError(f"Unsupported grouping '{group_by}'")

    groups: dict[str, GroupTotals] = {}
    for assignment in assignments:
        if group_by == "company":
            key, label = assignment.company_id, assignment.company_name
        else:
            key, label = assignment.worker_id, assignment.worker_name

        group = groups.get(key)
        if group is None:
            group = GroupTotals(key=key, label=label, totals_by_day={d.date_key: 0.0 for d in days})
            groups[key] = group
        group.assignments.append(assignment)

        for day in days:
            hours = resolve_hour(assignment, day.date_key, context)
            group.totals_by_day[day.date_key] += hours
            group.total += hours

    return sorted(groups.values(), key=lambda g: sort_key(g.label))
