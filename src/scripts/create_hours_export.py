#!/usr/bin/env python3
"""
Generate the payroll hours workbook for a date range.

Loads the worker directory and the tracked hours and notes from the schedule
API, then writes a "Resumen" sheet plus one detail sheet per worker.

Usage:
    uv run python src/scripts/create_hours_export.py --from 2024-01-01 --to 2024-01-07

Example:
    uv run python src/scripts/create_hours_export.py --from 2024-01-01 --to 2024-01-31 --detail daily --worker 42
"""

import argparse
import asyncio
import sys
from datetime import date
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.api_client import create_schedule_client, is_schedule_api_configured
from core.config import OUTPUT_DIR
from core.dates import build_day_descriptors, ensure_range_order
from models.hours import AssignmentTotalsContext
from services.assignments import generate_assignments
from services.control_schedule import fetch_company_lookup, fetch_workers, load_workers_week_data
from services.exports import DetailLevel, generate_hours_export, save_hours_export


async def run_export(
    start: date,
    end: date,
    worker_ids: list[str] | None,
    detail_level: DetailLevel,
    output_dir: Path,
) -> Path:
    start, end = ensure_range_order(start, end)

    async with create_schedule_client() as client:
        company_lookup = await fetch_company_lookup(client)
        workers = await fetch_workers(client, company_lookup)
        if worker_ids:
            workers = [worker for worker in workers if worker.id in set(worker_ids)]
        print(f"Loaded {len(workers)} workers and {len(company_lookup)} companies")

        load = await load_workers_week_data(client, workers, start, end, company_lookup)
        if load.error_message:
            print(f"Warning: {load.error_message}")

    result = generate_hours_export(
        generate_assignments(workers, company_lookup),
        AssignmentTotalsContext(worker_week_data=load.data),
        build_day_descriptors(start, end),
        workers,
        company_lookup,
        start,
        end,
        detail_level=detail_level,
        silent=False,
    )
    return save_hours_export(result, output_dir)


def main():
    parser = argparse.ArgumentParser(
        description="Generate the payroll hours workbook for a date range"
    )
    parser.add_argument(
        "--from",
        dest="start",
        type=date.fromisoformat,
        required=True,
        help="First day of the range (YYYY-MM-DD)",
    )
    parser.add_argument(
        "--to",
        dest="end",
        type=date.fromisoformat,
        required=True,
        help="Last day of the range (YYYY-MM-DD)",
    )
    parser.add_argument(
        "--worker",
        dest="worker_ids",
        action="append",
        help="Only export this worker id (repeatable)",
    )
    parser.add_argument(
        "--detail",
        choices=[level.value for level in DetailLevel],
        default=DetailLevel.SHIFTS.value,
        help="Content of the per-worker sheets (default: shifts)",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=OUTPUT_DIR,
        help=f"Output directory (default: {OUTPUT_DIR})",
    )

    args = parser.parse_args()

    if not is_schedule_api_configured():
        print("\nError: SCHEDULE_API_URL and SCHEDULE_API_TOKEN must be set")
        sys.exit(1)

    try:
        output_path = asyncio.run(
            run_export(args.start, args.end, args.worker_ids, DetailLevel(args.detail), args.output)
        )
        print(f"\nHours export generated: {output_path}")
    except Exception as e:
        print(f"\nError: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
