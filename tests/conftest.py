"""
Pytest configuration and shared fixtures.

The fixtures describe one week (Mon 2024-01-01 to Sun 2024-01-07) for two
workers: Ana works for two companies and has a note on Monday, Bruno has
no company and a single unassigned record.
"""

import json
import sys
from datetime import date
from pathlib import Path

import httpx
import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from core.api_client import create_schedule_client
from core.dates import build_day_descriptors
from models.hours import AssignmentTotalsContext
from services.assignments import generate_assignments, parse_company_lookup, parse_workers
from services.schedule import build_worker_weekly_data

WEEK_START = date(2024, 1, 1)
WEEK_END = date(2024, 1, 7)


@pytest.fixture
def company_records():
    """Records of /parameter/list?types=1."""
    return [
        {"id": "c1", "name": "Obras Norte"},
        {"id": "c2", "description": "Reformas Sur"},
    ]


@pytest.fixture
def worker_records():
    """Records of the worker directory feed."""
    return [
        {
            "id": "w1",
            "name": "Ana López",
            "hourlyRate": "15",
            "parameterRelations": [
                {"id": "rel-1", "companyId": "c1", "type": 1, "hourlyRate": "18,5"},
                {"id": "rel-2", "companyId": "c2", "type": 2},
            ],
        },
        {"id": "w2", "name": "Bruno Díaz", "hourlyRate": 12},
    ]


@pytest.fixture
def hour_records():
    """Type 1 records per worker id."""
    return {
        "w1": [
            {
                "id": "r1",
                "dateTime": "2024-01-01T08:00:00Z",
                "value": "4",
                "companyId": "c1",
                "companyName": "Obras Norte",
                "workShifts": [
                    {"id": "s1", "workStart": "08:00:00", "workEnd": "12:00:00", "observations": "Encofrado"},
                ],
            },
            {
                "id": "r2",
                "dateTime": "2024-01-01T13:00:00Z",
                "value": 3.5,
                "companyId": "c2",
            },
            {
                # 22:30 UTC plus the offset lands on Wednesday
                "id": "r3",
                "dateTime": "2024-01-02T22:30:00Z",
                "value": "2,5",
                "companyId": "c1",
                "companyName": "Obras Norte",
            },
        ],
        "w2": [
            {"id": "r9", "dateTime": "2024-01-02T07:00:00Z", "value": "6"},
        ],
    }


@pytest.fixture
def note_records():
    """Type 7 records per worker id."""
    return {
        "w1": [
            {"id": "n1", "dateTime": "2024-01-01T09:00:00Z", "value": "Lluvia por la tarde"},
        ],
        "w2": [],
    }


@pytest.fixture
def company_lookup(company_records):
    return parse_company_lookup(company_records)


@pytest.fixture
def workers(worker_records, company_lookup):
    return parse_workers(worker_records, company_lookup)


@pytest.fixture
def assignments(workers, company_lookup):
    return generate_assignments(workers, company_lookup)


@pytest.fixture
def days():
    return build_day_descriptors(WEEK_START, WEEK_END)


@pytest.fixture
def week_context(hour_records, note_records, company_lookup):
    """Totals context built the same way the loaders build it."""
    return AssignmentTotalsContext(
        worker_week_data={
            worker_id: build_worker_weekly_data(
                records,
                note_records.get(worker_id),
                company_lookup,
                offset_hours=2,
            )
            for worker_id, records in hour_records.items()
        }
    )


class FakeScheduleApi:
    """
    In-memory schedule API served through httpx.MockTransport.

    Workers listed in failing_workers answer 500 on the list endpoint;
    failing_types limits those failures to some record types.
    """

    def __init__(self, company_records, worker_records, hour_records, note_records):
        self.company_records = company_records
        self.worker_records = worker_records
        self.hour_records = hour_records
        self.note_records = note_records
        self.failing_workers: set[str] = set()
        self.failing_types: set[int] | None = None
        self.saved: list[list[dict]] = []
        self.list_requests: list[dict] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/api/parameter/list":
            if request.url.params.get("types") == "1":
                return httpx.Response(200, json={"data": self.company_records})
            return httpx.Response(200, json=self.worker_records)

        if path == "/api/ControlSchedule/List":
            body = json.loads(request.content)
            self.list_requests.append(body)
            worker_id = body["parametersId"][0]
            types = set(body["types"])
            if worker_id in self.failing_workers and (self.failing_types is None or types & self.failing_types):
                return httpx.Response(500, json={"message": "boom"})
            source = self.note_records if 7 in types else self.hour_records
            return httpx.Response(200, json=source.get(worker_id, []))

        if path == "/api/controlSchedule/save":
            self.saved.append(json.loads(request.content))
            return httpx.Response(200, json={"ok": True})

        return httpx.Response(404)

    def client(self) -> httpx.AsyncClient:
        return create_schedule_client(token="test-token", transport=httpx.MockTransport(self.handler))


@pytest.fixture
def fake_api(company_records, worker_records, hour_records, note_records):
    return FakeScheduleApi(company_records, worker_records, hour_records, note_records)
