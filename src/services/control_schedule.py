"""
Control-schedule fetching and saving against the external schedule API.

Per worker the hour records (type 1) and notes (type 7) for a range are
fetched and aggregated into WorkerWeeklyData. Loading several workers waits
for every request to settle; failures are collected, not raised.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date

import httpx

from core.api_client import build_api_endpoint
from core.config import (
    ENTRY_DATE_OFFSET_HOURS,
    SCHEDULE_API_URL,
    SCHEDULE_TYPE_HOURS,
    SCHEDULE_TYPE_NOTE,
)
from core.dates import ensure_range_order, format_date_key
from models.hours import ControlScheduleSaveItem, Worker, WorkerWeeklyData
from services.assignments import parse_company_lookup, parse_workers
from services.save_payload import SavePayload
from services.schedule import build_worker_weekly_data

logger = logging.getLogger(__name__)

CONTROL_SCHEDULE_LIST_PATH = "/ControlSchedule/List"
CONTROL_SCHEDULE_SAVE_PATH = "/controlSchedule/save"
COMPANIES_PATH = "/parameter/list?types=1"
WORKERS_PATH = "/parameter/list?types[0]=5&types[1]=4&situation=0"

EMPTY_RESPONSE_STATUSES = {204, 404}


class ScheduleApiError(Exception):
    """The schedule API answered with an error status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class WeekDataLoadResult:
    """Outcome of loading several workers' data; partial on failures."""
    data: dict[str, WorkerWeeklyData] = field(default_factory=dict)
    failed_worker_ids: list[str] = field(default_factory=list)
    error_message: str | None = None


# =============================================================================
# RESPONSE HELPERS
# =============================================================================


def extract_error_message(response: httpx.Response) -> str:
    """Best human-readable message from an error response body."""
    message = f"Error {response.status_code}"
    text = response.text
    if not text or not text.strip():
        return message
    try:
        data = response.json()
    except ValueError:
        return text
    if isinstance(data, str) and data.strip():
        return data
    if isinstance(data, dict):
        for key in ("message", "error", "title", "detail"):
            candidate = data.get(key)
            if isinstance(candidate, str) and candidate.strip():
                return candidate
    return text


def _extract_list(data, keys: tuple[str, ...]) -> list[dict]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in keys:
            if isinstance(data.get(key), list):
                return data[key]
    return []


def build_list_request(worker_id: str, start: date, end: date, types: list[int]) -> dict:
    start, end = ensure_range_order(start, end)
    return {
        "from": f"{format_date_key(start)}T00:00:00.000Z",
        "to": f"{format_date_key(end)}T23:59:59.999Z",
        "parametersId": [worker_id],
        "companiesId": [],
        "types": types,
    }


# =============================================================================
# FETCHING
# =============================================================================


async def fetch_schedule_entries(
    client: httpx.AsyncClient,
    worker_id: str,
    start: date,
    end: date,
    types: list[int],
    base_url: str = SCHEDULE_API_URL,
) -> list[dict]:
    """
    POST /ControlSchedule/List for one worker and record types.

    204 and 404 mean no records. Any other error status raises
    ScheduleApiError.
    """
    response = await client.post(
        build_api_endpoint(base_url, CONTROL_SCHEDULE_LIST_PATH),
        json=build_list_request(worker_id, start, end, types),
    )
    if response.status_code in EMPTY_RESPONSE_STATUSES:
        return []
    if not response.is_success:
        raise ScheduleApiError(
            f"Error fetching schedule control (types: {','.join(map(str, types))}): "
            f"{response.status_code} - {response.reason_phrase}",
            status_code=response.status_code,
        )
    return _extract_list(response.json(), ("entries",))


async def fetch_worker_week_data(
    client: httpx.AsyncClient,
    worker_id: str,
    start: date,
    end: date,
    company_lookup: dict[str, str] | None = None,
    base_url: str = SCHEDULE_API_URL,
    offset_hours: float = ENTRY_DATE_OFFSET_HOURS,
) -> WorkerWeeklyData:
    """Fetch hours and notes for a worker and aggregate them per day."""
    hour_records = await fetch_schedule_entries(client, worker_id, start, end, [SCHEDULE_TYPE_HOURS], base_url)
    try:
        note_records = await fetch_schedule_entries(client, worker_id, start, end, [SCHEDULE_TYPE_NOTE], base_url)
    except (ScheduleApiError, httpx.HTTPError) as e:
        logger.warning("Could not load notes for worker %s: %s", worker_id, e)
        note_records = []
    return build_worker_weekly_data(hour_records, note_records, company_lookup, offset_hours=offset_hours)


def build_load_error_message(worker_names: list[str]) -> str | None:
    if not worker_names:
        return None
    return " ".join(
        f"No se pudieron cargar los registros horarios de {name}." for name in worker_names
    )


async def load_workers_week_data(
    client: httpx.AsyncClient,
    workers: list[Worker],
    start: date,
    end: date,
    company_lookup: dict[str, str] | None = None,
    base_url: str = SCHEDULE_API_URL,
    offset_hours: float = ENTRY_DATE_OFFSET_HOURS,
) -> WeekDataLoadResult:
    """
    Load every worker concurrently and wait for all of them to settle.

    Workers whose request fails are listed in failed_worker_ids and named in
    error_message; the others are returned normally.
    """
    results = await asyncio.gather(
        *(
            fetch_worker_week_data(client, worker.id, start, end, company_lookup, base_url, offset_hours)
            for worker in workers
        ),
        return_exceptions=True,
    )

    outcome = WeekDataLoadResult()
    failed_names = []
    for worker, result in zip(workers, results):
        if isinstance(result, Exception):
            logger.error("Error loading schedule for worker %s: %s", worker.id, result)
            outcome.failed_worker_ids.append(worker.id)
            failed_names.append(worker.name)
            continue
        outcome.data[worker.id] = result
    outcome.error_message = build_load_error_message(failed_names)
    return outcome


class WeekDataLoader:
    """
    Last-request-wins wrapper around load_workers_week_data.

    A load started before the latest one returns None instead of its result,
    so a slow response for an old range never replaces newer data.
    """

    def __init__(self, client: httpx.AsyncClient, base_url: str = SCHEDULE_API_URL):
        self.client = client
        self.base_url = base_url
        self._generation = 0

    async def load(
        self,
        workers: list[Worker],
        start: date,
        end: date,
        company_lookup: dict[str, str] | None = None,
    ) -> WeekDataLoadResult | None:
        self._generation += 1
        generation = self._generation
        result = await load_workers_week_data(self.client, workers, start, end, company_lookup, self.base_url)
        if generation != self._generation:
            logger.debug("Discarding superseded week data load %s", generation)
            return None
        return result


# =============================================================================
# DIRECTORY
# =============================================================================


async def _get_list(client: httpx.AsyncClient, url: str) -> list[dict]:
    response = await client.get(url)
    if response.status_code in EMPTY_RESPONSE_STATUSES:
        return []
    if not response.is_success:
        raise ScheduleApiError(extract_error_message(response), status_code=response.status_code)
    return _extract_list(response.json(), ("data", "items"))


async def fetch_company_lookup(client: httpx.AsyncClient, base_url: str = SCHEDULE_API_URL) -> dict[str, str]:
    records = await _get_list(client, build_api_endpoint(base_url, COMPANIES_PATH))
    return parse_company_lookup(records)


async def fetch_workers(
    client: httpx.AsyncClient,
    company_lookup: dict[str, str] | None = None,
    base_url: str = SCHEDULE_API_URL,
) -> list[Worker]:
    records = await _get_list(client, build_api_endpoint(base_url, WORKERS_PATH))
    return parse_workers(records, company_lookup)


# =============================================================================
# SAVING
# =============================================================================


async def save_control_schedule(
    client: httpx.AsyncClient,
    items: list[ControlScheduleSaveItem],
    base_url: str = SCHEDULE_API_URL,
) -> None:
    """POST one worker's items, ordered by controlScheduleType."""
    ordered = sorted(items, key=lambda item: item["controlScheduleType"])
    response = await client.post(build_api_endpoint(base_url, CONTROL_SCHEDULE_SAVE_PATH), json=ordered)
    if not response.is_success:
        raise ScheduleApiError(extract_error_message(response), status_code=response.status_code)


async def save_payload(
    client: httpx.AsyncClient,
    payload: SavePayload,
    base_url: str = SCHEDULE_API_URL,
) -> int:
    """Send every worker's items, one request per worker. Returns requests sent."""
    sent = 0
    for worker_id in payload.by_worker:
        items = payload.ordered(worker_id)
        if not items:
            continue
        await save_control_schedule(client, items, base_url)
        sent += 1
    return sent
