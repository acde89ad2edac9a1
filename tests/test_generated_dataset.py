"""Runs the whole export over a generated month of schedule data."""

import sys
from datetime import date
from pathlib import Path

import pytest

from core.dates import build_day_descriptors
from models.hours import AssignmentTotalsContext
from services.assignments import generate_assignments, parse_company_lookup, parse_workers
from services.exports import generate_hours_export
from services.schedule import build_worker_weekly_data

# Add fixtures to path for imports
sys.path.insert(0, str(Path(__file__).parent / "fixtures"))

from generate_schedule import build_schedule_fixture

START = date(2025, 11, 1)
END = date(2025, 11, 30)


@pytest.fixture(scope="module")
def dataset():
    return build_schedule_fixture(START, END, seed=42)


def test_fixture_is_deterministic(dataset):
    assert build_schedule_fixture(START, END, seed=42) == dataset


def test_month_export_accounts_for_every_record(dataset):
    company_lookup = parse_company_lookup(dataset["companies"])
    workers = parse_workers(dataset["workers"], company_lookup)
    context = AssignmentTotalsContext(
        worker_week_data={
            worker.id: build_worker_weekly_data(
                dataset["hours"][worker.id],
                dataset["notes"][worker.id],
                company_lookup,
                offset_hours=0,
            )
            for worker in workers
        }
    )

    result = generate_hours_export(
        generate_assignments(workers, company_lookup),
        context,
        build_day_descriptors(START, END),
        workers,
        company_lookup,
        START,
        END,
    )

    expected = sum(float(r["value"]) for records in dataset["hours"].values() for r in records)
    assert result.total_hours == pytest.approx(expected)
    assert result.sheet_names[0] == "Resumen"
    assert len(result.sheet_names) <= len(workers) + 1
    assert all(len(name) <= 31 for name in result.sheet_names)
