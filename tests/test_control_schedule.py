"""Tests for the schedule API client calls, against an in-memory API."""

import asyncio
from datetime import date

import httpx
import pytest

from core.api_client import build_api_endpoint, build_headers
from services.control_schedule import (
    ScheduleApiError,
    WeekDataLoader,
    build_list_request,
    extract_error_message,
    fetch_company_lookup,
    fetch_schedule_entries,
    fetch_workers,
    load_workers_week_data,
    save_payload,
)
from services.save_payload import SavePayload

BASE_URL = "https://schedule.test"
START = date(2024, 1, 1)
END = date(2024, 1, 7)


def _run(coro_factory, fake_api):
    async def runner():
        async with fake_api.client() as client:
            return await coro_factory(client)

    return asyncio.run(runner())


class TestEndpoints:
    def test_api_prefix_is_inserted_once(self):
        assert build_api_endpoint("https://h.test/", "/x") == "https://h.test/api/x"
        assert build_api_endpoint("https://h.test/api", "x") == "https://h.test/api/x"
        assert build_api_endpoint("https://h.test/API/v2", "/x") == "https://h.test/API/v2/x"

    def test_headers(self):
        assert build_headers("t")["Authorization"] == "Bearer t"
        assert "Authorization" not in build_headers("")


def test_build_list_request_orders_range():
    body = build_list_request("w1", END, START, [1])
    assert body == {
        "from": "2024-01-01T00:00:00.000Z",
        "to": "2024-01-07T23:59:59.999Z",
        "parametersId": ["w1"],
        "companiesId": [],
        "types": [1],
    }


class TestFetchEntries:
    @pytest.mark.parametrize("status_code", [204, 404])
    def test_empty_statuses(self, status_code):
        transport = httpx.MockTransport(lambda request: httpx.Response(status_code))

        async def run():
            async with httpx.AsyncClient(transport=transport) as client:
                return await fetch_schedule_entries(client, "w1", START, END, [1], BASE_URL)

        assert asyncio.run(run()) == []

    def test_entries_wrapper(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"entries": [{"id": "r1"}]}))

        async def run():
            async with httpx.AsyncClient(transport=transport) as client:
                return await fetch_schedule_entries(client, "w1", START, END, [1], BASE_URL)

        assert asyncio.run(run()) == [{"id": "r1"}]

    def test_error_status_raises(self, fake_api):
        fake_api.failing_workers.add("w1")
        with pytest.raises(ScheduleApiError) as excinfo:
            _run(lambda client: fetch_schedule_entries(client, "w1", START, END, [1], BASE_URL), fake_api)
        assert excinfo.value.status_code == 500
        assert "types: 1" in str(excinfo.value)


def test_extract_error_message():
    request = httpx.Request("GET", BASE_URL)
    assert extract_error_message(httpx.Response(400, json={"title": "Bad"}, request=request)) == "Bad"
    assert extract_error_message(httpx.Response(400, text="plain", request=request)) == "plain"
    assert extract_error_message(httpx.Response(503, request=request)) == "Error 503"


class TestDirectory:
    def test_company_lookup(self, fake_api):
        lookup = _run(lambda client: fetch_company_lookup(client, BASE_URL), fake_api)
        assert lookup == {"c1": "Obras Norte", "c2": "Reformas Sur"}

    def test_workers(self, fake_api, company_lookup):
        workers = _run(lambda client: fetch_workers(client, company_lookup, BASE_URL), fake_api)
        assert [w.id for w in workers] == ["w1", "w2"]
        assert workers[0].company_names == ["Obras Norte", "Reformas Sur"]


class TestLoadWeekData:
    def test_loads_every_worker(self, fake_api, workers, company_lookup):
        result = _run(
            lambda client: load_workers_week_data(client, workers, START, END, company_lookup, BASE_URL),
            fake_api,
        )
        assert result.failed_worker_ids == []
        assert result.error_message is None
        assert result.data["w1"].days["2024-01-01"].total_hours == 7.5
        assert [n.text for n in result.data["w1"].days["2024-01-01"].note_entries] == ["Lluvia por la tarde"]
        # One hours and one notes request per worker
        assert sorted(tuple(r["types"]) for r in fake_api.list_requests) == [(1,), (1,), (7,), (7,)]

    def test_failures_are_collected(self, fake_api, workers, company_lookup):
        fake_api.failing_workers.add("w2")
        result = _run(
            lambda client: load_workers_week_data(client, workers, START, END, company_lookup, BASE_URL),
            fake_api,
        )
        assert result.failed_worker_ids == ["w2"]
        assert result.error_message == "No se pudieron cargar los registros horarios de Bruno Díaz."
        assert list(result.data) == ["w1"]

    def test_note_failure_is_not_fatal(self, fake_api, workers, company_lookup):
        fake_api.failing_workers.add("w1")
        fake_api.failing_types = {7}
        result = _run(
            lambda client: load_workers_week_data(client, workers, START, END, company_lookup, BASE_URL),
            fake_api,
        )
        assert result.failed_worker_ids == []
        assert result.data["w1"].days["2024-01-01"].note_entries == []

    def test_superseded_load_is_discarded(self, fake_api, workers):
        async def run(client):
            loader = WeekDataLoader(client, BASE_URL)
            return await asyncio.gather(
                loader.load(workers, START, END),
                loader.load(workers[:1], START, START),
            )

        first, second = _run(run, fake_api)
        assert first is None
        assert list(second.data) == ["w1"]


def test_save_payload_posts_per_worker(fake_api):
    payload = SavePayload()
    payload.add("w1", {"id": "n1", "dateTime": "d", "parameterId": "w1", "controlScheduleType": 7, "value": ""})
    payload.add("w1", {"id": "r1", "dateTime": "d", "parameterId": "w1", "controlScheduleType": 1, "value": "6.00"})
    payload.add("w2", {"id": "", "dateTime": "d", "parameterId": "w2", "controlScheduleType": 1, "value": "3.00"})
    payload.by_worker["w3"] = []

    sent = _run(lambda client: save_payload(client, payload, BASE_URL), fake_api)

    assert sent == 2
    assert len(fake_api.saved) == 2
    assert [item["controlScheduleType"] for item in fake_api.saved[0]] == [1, 7]


def test_save_error_raises():
    transport = httpx.MockTransport(lambda request: httpx.Response(422, json={"message": "Fecha bloqueada"}))
    payload = SavePayload()
    payload.add("w1", {"id": "", "dateTime": "d", "parameterId": "w1", "controlScheduleType": 1, "value": "1.00"})

    async def run():
        async with httpx.AsyncClient(transport=transport) as client:
            await save_payload(client, payload, BASE_URL)

    with pytest.raises(ScheduleApiError, match="Fecha bloqueada"):
        asyncio.run(run())
