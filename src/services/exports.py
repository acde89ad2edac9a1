"""
Hours Export Service

Generates the payroll workbook for a date range: a "Resumen" summary sheet
with hours, rates and live amount formulas per worker and company, followed by
one detail sheet per worker. The detail level picks what those worker sheets
contain (nothing, one row per day, or one row per shift).
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from io import BytesIO
from pathlib import Path
from typing import Any

from openpyxl import Workbook

from core.companies import normalize_company_lookup
from core.config import (
    HOURS_COMPARISON_EPSILON,
    NOTE_LINE_SEPARATOR,
    OUTPUT_DIR,
    SUMMARY_SHEET_NAME,
)
from core.dates import format_date_key, format_date_range, format_sheet_date
from core.values import format_minutes_to_time, parse_hour, parse_time_to_minutes
from models.hours import Assignment, AssignmentTotalsContext, DayDescriptor, Worker
from services.aggregation import (
    ExportAggregate,
    RateResolver,
    aggregate_export_rows,
    build_worker_lookup,
)
from services.assignments import resolve_entries_for_assignment, resolve_hourly_rate
from services.schedule import day_note_texts, sort_key
from services.spreadsheet import (
    WorkerDetailRow,
    build_summary_sheet,
    build_worker_detail_sheet,
    unique_sheet_name,
)
from services.totals import has_manual_value, resolve_hour

# =============================================================================
# DATA CLASSES
# =============================================================================


class DetailLevel(str, Enum):
    SUMMARY = "summary"
    DAILY = "daily"
    SHIFTS = "shifts"


@dataclass
class ExportResult:
    """Result of hours export processing."""

    workbook: Any  # openpyxl.Workbook
    filename: str
    worker_count: int
    company_count: int
    total_hours: float
    total_amount: float
    sheet_names: list[str] = field(default_factory=list)


@dataclass
class _RatedAssignment:
    assignment: Assignment
    rate: float | None


# =============================================================================
# DETAIL ROWS
# =============================================================================


def _amount(hours: float | None, rate: float | None) -> float | None:
    if hours is None or rate is None:
        return None
    return hours * rate


def _day_notes(context: AssignmentTotalsContext, worker_id: str, date_key: str) -> str | None:
    week_data = context.worker_week_data.get(worker_id)
    day_data = week_data.days.get(date_key) if week_data else None
    texts = day_note_texts(day_data)
    return NOTE_LINE_SEPARATOR.join(texts) if texts else None


def build_daily_rows(
    worker_id: str,
    rated: list[_RatedAssignment],
    context: AssignmentTotalsContext,
    days: list[DayDescriptor],
) -> list[WorkerDetailRow]:
    """One row per visible day with the worker's resolved hours and notes."""
    week_data = context.worker_week_data.get(worker_id)
    rows = []
    for day in days:
        day_data = week_data.days.get(day.date_key) if week_data else None

        hours_total = 0.0
        amount_total = None
        companies: list[str] = []
        for item in rated:
            hours = resolve_hour(item.assignment, day.date_key, context)
            if hours == 0:
                continue
            hours_total += hours
            if item.assignment.company_name not in companies:
                companies.append(item.assignment.company_name)
            amount = _amount(hours, item.rate)
            if amount is not None:
                amount_total = (amount_total or 0.0) + amount

        earliest = latest = None
        for entry in day_data.entries if day_data else []:
            for shift in entry.work_shifts or []:
                start = parse_time_to_minutes(shift.start_time)
                end = parse_time_to_minutes(shift.end_time)
                if start is not None:
                    earliest = start if earliest is None else min(earliest, start)
                if end is not None:
                    latest = end if latest is None else max(latest, end)

        notes = _day_notes(context, worker_id, day.date_key)
        rows.append(
            WorkerDetailRow(
                day_label=day.label.upper(),
                date_label=format_sheet_date(day.date),
                company_name=", ".join(sorted(companies, key=sort_key)),
                entry_time=format_minutes_to_time(earliest) if earliest is not None else None,
                exit_time=format_minutes_to_time(latest) if latest is not None else None,
                hours=hours_total if day_data or hours_total else None,
                amount=amount_total,
                notes=notes.upper() if notes else None,
            )
        )
    return rows


def build_shift_rows(
    worker_id: str,
    rated: list[_RatedAssignment],
    context: AssignmentTotalsContext,
    days: list[DayDescriptor],
) -> list[WorkerDetailRow]:
    """
    One row per shift or tracked entry, ordered by date, start time and company.

    A manual value replaces the tracked data of its cell with a single row.
    Day notes go on the first row of their day, or on a row of their own.
    """
    week_data = context.worker_week_data.get(worker_id)
    rows = []
    for day in days:
        day_data = week_data.days.get(day.date_key) if week_data else None
        day_rows: list[WorkerDetailRow] = []

        def add(company_name: str, hours: float | None, rate: float | None,
                start: str | None = None, end: str | None = None, notes: str | None = None) -> None:
            day_rows.append(
                WorkerDetailRow(
                    day_label=day.label.upper(),
                    date_label=format_sheet_date(day.date),
                    company_name=company_name,
                    entry_time=start,
                    exit_time=end,
                    hours=hours,
                    amount=_amount(hours, rate),
                    notes=notes,
                )
            )

        for item in rated:
            assignment = item.assignment
            if has_manual_value(assignment, day.date_key):
                add(assignment.company_name, parse_hour(assignment.hours[day.date_key]), item.rate)
                continue

            for entry in resolve_entries_for_assignment(day_data, assignment):
                timed_shifts = [s for s in entry.work_shifts or [] if s.start_time or s.end_time]
                if not timed_shifts:
                    add(assignment.company_name, entry.hours, item.rate, notes=entry.description)
                    continue
                for shift in timed_shifts:
                    hours = shift.hours
                    if hours is None and len(timed_shifts) == 1:
                        hours = entry.hours
                    add(
                        assignment.company_name,
                        hours,
                        item.rate,
                        start=shift.start_time,
                        end=shift.end_time,
                        notes=shift.description or entry.description,
                    )

        day_rows.sort(key=lambda r: (r.entry_time or "99:99", sort_key(r.company_name)))

        day_notes = _day_notes(context, worker_id, day.date_key)
        if day_notes:
            if day_rows:
                first = day_rows[0]
                first.notes = NOTE_LINE_SEPARATOR.join(n for n in (day_notes, first.notes) if n)
            else:
                add("", None, None, notes=day_notes)

        rows.extend(day_rows)
    return rows


def _has_detail_content(rows: list[WorkerDetailRow], epsilon: float) -> bool:
    return any(
        (row.hours is not None and abs(row.hours) >= epsilon) or (row.notes or "").strip()
        for row in rows
    )


# =============================================================================
# WORKBOOK
# =============================================================================


def build_export_filename(range_start: date, range_end: date) -> str:
    start, end = sorted((range_start, range_end))
    return f"control-horario-{format_date_key(start)}-al-{format_date_key(end)}.xlsx"


def create_export_workbook(
    aggregate: ExportAggregate,
    assignments: list[Assignment],
    context: AssignmentTotalsContext,
    days: list[DayDescriptor],
    worker_lookup: dict[str, Worker],
    company_lookup: dict[str, str],
    range_label: str,
    detail_level: DetailLevel,
    epsilon: float,
    rate_resolver: RateResolver,
    silent: bool = True,
) -> tuple[Workbook, list[str]]:
    wb = Workbook()
    used_names: set[str] = set()

    summary_ws = wb.active
    summary_ws.title = unique_sheet_name(SUMMARY_SHEET_NAME, used_names)
    build_summary_sheet(summary_ws, aggregate, range_label)
    sheet_names = [summary_ws.title]

    if detail_level == DetailLevel.SUMMARY:
        return wb, sheet_names

    for worker in aggregate.workers:
        rated = [
            _RatedAssignment(a, rate_resolver(worker_lookup.get(a.worker_id), a, company_lookup))
            for a in assignments
            if a.worker_id == worker.worker_id
        ]
        rated.sort(key=lambda item: sort_key(item.assignment.company_name))

        if detail_level == DetailLevel.DAILY:
            rows = build_daily_rows(worker.worker_id, rated, context, days)
        else:
            rows = build_shift_rows(worker.worker_id, rated, context, days)

        if not _has_detail_content(rows, epsilon):
            if not silent:
                print(f"  - Skipping detail sheet for {worker.worker_name} (no hours or notes)")
            continue

        ws = wb.create_sheet(title=unique_sheet_name(worker.worker_name, used_names))
        build_worker_detail_sheet(ws, worker.worker_name, range_label, rows)
        sheet_names.append(ws.title)
        if not silent:
            print(f"  - {ws.title}: {len(rows)} rows")

    return wb, sheet_names


# =============================================================================
# MAIN ENTRY POINTS
# =============================================================================


def generate_hours_export(
    assignments: list[Assignment],
    context: AssignmentTotalsContext,
    days: list[DayDescriptor],
    workers: list[Worker],
    company_lookup: dict[str, str] | None,
    range_start: date,
    range_end: date,
    *,
    detail_level: DetailLevel = DetailLevel.SHIFTS,
    epsilon: float = HOURS_COMPARISON_EPSILON,
    rate_resolver: RateResolver = resolve_hourly_rate,
    silent: bool = True,
) -> ExportResult:
    """
    Core export processing shared by file and bytes generators.

    Raises:
        NoExportDataError: Nothing in the range has hours
    """
    company_lookup = normalize_company_lookup(company_lookup)
    worker_lookup = build_worker_lookup(workers)
    range_label = format_date_range(range_start, range_end)

    aggregate = aggregate_export_rows(
        assignments,
        context,
        days,
        worker_lookup,
        company_lookup,
        epsilon=epsilon,
        rate_resolver=rate_resolver,
    )
    if not silent:
        print(
            f"Exporting {len(aggregate.workers)} workers across "
            f"{len(aggregate.companies)} companies ({aggregate.total_hours:.2f} h)"
        )

    wb, sheet_names = create_export_workbook(
        aggregate,
        assignments,
        context,
        days,
        worker_lookup,
        company_lookup,
        range_label,
        DetailLevel(detail_level),
        epsilon,
        rate_resolver,
        silent,
    )

    return ExportResult(
        workbook=wb,
        filename=build_export_filename(range_start, range_end),
        worker_count=len(aggregate.workers),
        company_count=len(aggregate.companies),
        total_hours=aggregate.total_hours,
        total_amount=aggregate.total_amount,
        sheet_names=sheet_names,
    )


def generate_hours_export_to_bytes(*args, **kwargs) -> tuple[bytes, str, int, float]:
    """
    Generate the export and return it as bytes (for API usage).

    Accepts the same arguments as generate_hours_export.

    Returns:
        Tuple of (excel_bytes, filename, worker_count, total_hours)
    """
    result = generate_hours_export(*args, **kwargs)

    buffer = BytesIO()
    result.workbook.save(buffer)
    buffer.seek(0)

    return (
        buffer.getvalue(),
        result.filename,
        result.worker_count,
        result.total_hours,
    )


def save_hours_export(result: ExportResult, output_dir: Path = OUTPUT_DIR) -> Path:
    """Write an export to output_dir, keeping its generated filename."""
    output_dir.mkdir(parents=True, exist_ok=True)
    output_file = output_dir / result.filename
    result.workbook.save(str(output_file))
    return output_file
