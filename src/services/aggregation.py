"""
Row and company aggregation for exports.

Collapses assignments into per-worker and per-company buckets with hours,
amounts and the hours that carry a known rate.
"""

from collections.abc import Callable
from dataclasses import dataclass, field

from core.companies import company_key
from core.config import HOURS_COMPARISON_EPSILON, NO_EXPORT_DATA_MESSAGE
from models.hours import Assignment, AssignmentTotalsContext, DayDescriptor, Worker
from services.assignments import resolve_hourly_rate
from services.schedule import sort_key
from services.totals import calculate_row_total

RateResolver = Callable[[Worker | None, Assignment, dict[str, str]], float | None]


class NoExportDataError(ValueError):
    """Raised when nothing in the selected range has hours to export."""

    def __init__(self, message: str = NO_EXPORT_DATA_MESSAGE):
        super().__init__(message)


@dataclass
class WorkerRow:
    """One (worker, company) line of the summary sheet."""
    assignment: Assignment
    company_name: str
    hours: float
    hourly_rate: float | None = None
    amount: float | None = None


@dataclass
class WorkerAggregate:
    worker_id: str
    worker_name: str
    rows: list[WorkerRow] = field(default_factory=list)
    total_hours: float = 0.0
    total_amount: float = 0.0
    hours_with_rate: float = 0.0


@dataclass
class CompanyAggregate:
    key: str
    company_name: str
    total_hours: float = 0.0
    total_amount: float = 0.0
    hours_with_rate: float = 0.0


@dataclass
class ExportAggregate:
    workers: list[WorkerAggregate]
    companies: list[CompanyAggregate]

    @property
    def total_hours(self) -> float:
        return sum(worker.total_hours for worker in self.workers)

    @property
    def total_amount(self) -> float:
        return sum(worker.total_amount for worker in self.workers)


def aggregate_export_rows(
    assignments: list[Assignment],
    totals_context: AssignmentTotalsContext,
    days: list[DayDescriptor],
    worker_lookup: dict[str, Worker] | None = None,
    company_lookup: dict[str, str] | None = None,
    *,
    epsilon: float = HOURS_COMPARISON_EPSILON,
    rate_resolver: RateResolver = resolve_hourly_rate,
) -> ExportAggregate:
    """
    Aggregate assignments into sorted worker and company buckets.

    Rows whose hours are below epsilon are left out of both sides, workers
    left without rows are dropped, and so are companies whose total is below
    epsilon.

    Raises:
        NoExportDataError: No worker has any hours in the range
    """
    worker_lookup = worker_lookup or {}
    company_lookup = company_lookup or {}

    workers: dict[str, WorkerAggregate] = {}
    companies: dict[str, CompanyAggregate] = {}

    for assignment in assignments:
        hours = calculate_row_total(assignment, totals_context, days)
        if abs(hours) < epsilon:
            continue

        worker = worker_lookup.get(assignment.worker_id)
        rate = rate_resolver(worker, assignment, company_lookup)
        amount = hours * rate if rate is not None else None

        worker_bucket = workers.get(assignment.worker_id)
        if worker_bucket is None:
            worker_bucket = WorkerAggregate(
                worker_id=assignment.worker_id,
                worker_name=worker.name if worker else assignment.worker_name,
            )
            workers[assignment.worker_id] = worker_bucket

        worker_bucket.rows.append(
            WorkerRow(
                assignment=assignment,
                company_name=assignment.company_name,
                hours=hours,
                hourly_rate=rate,
                amount=amount,
            )
        )
        worker_bucket.total_hours += hours

        key = company_key(assignment.company_id, assignment.company_name)
        company_bucket = companies.get(key)
        if company_bucket is None:
            company_bucket = CompanyAggregate(key=key, company_name=assignment.company_name)
            companies[key] = company_bucket
        elif not company_bucket.company_name and assignment.company_name:
            company_bucket.company_name = assignment.company_name
        company_bucket.total_hours += hours

        if amount is not None:
            worker_bucket.total_amount += amount
            worker_bucket.hours_with_rate += hours
            company_bucket.total_amount += amount
            company_bucket.hours_with_rate += hours

    if not workers:
        raise NoExportDataError()

    sorted_workers = sorted(workers.values(), key=lambda w: sort_key(w.worker_name))
    for worker_bucket in sorted_workers:
        worker_bucket.rows.sort(key=lambda row: sort_key(row.company_name))

    sorted_companies = sorted(
        (c for c in companies.values() if abs(c.total_hours) >= epsilon),
        key=lambda c: sort_key(c.company_name),
    )

    return ExportAggregate(workers=sorted_workers, companies=sorted_companies)


def build_worker_lookup(workers: list[Worker]) -> dict[str, Worker]:
    return {worker.id: worker for worker in workers}
