import asyncio
import json
from typing import List

import httpx
import pytest

from src.domain.exceptions import GamePlanAuthError, GamePlanRequestError, GamePlanTransientError
from src.infrastructure.gameplan.gameplan_client import GamePlanClient
from src.infrastructure.repositories.gameplan_record_repository_impl import GamePlanRecordRepositoryImpl

BASE_URL = "https://gameplan.example.com/api/resource/"


async def _no_sleep(_: float) -> None:
    return None


def _client(handler, api_key="secret", **overrides) -> GamePlanClient:
    return GamePlanClient(
        base_url=BASE_URL,
        api_key_provider=lambda: api_key,
        transport=httpx.MockTransport(handler),
        sleep=_no_sleep,
        **overrides,
    )


def test_fetch_all_paginates_until_short_page():
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        start = int(request.url.params["limit_start"])
        rows = [{"name": f"T{start + i}"} for i in range(2)] if start < 4 else [{"name": "T4"}]
        return httpx.Response(200, json={"data": rows})

    records = asyncio.run(_client(handler, page_size=2).fetch_all("GP Task"))

    assert [record["name"] for record in records] == ["T0", "T1", "T2", "T3", "T4"]
    assert [request.url.params["limit_start"] for request in seen] == ["0", "2", "4"]
    first = seen[0]
    assert first.url.path == "/api/resource/GP Task"
    assert json.loads(first.url.params["fields"]) == ["*"]
    assert first.url.params["limit_page_length"] == "2"
    assert first.headers["Authorization"] == "token secret"


def test_fetch_all_stops_on_empty_page_and_accepts_bare_lists():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        start = int(request.url.params["limit_start"])
        return httpx.Response(200, json=[{"name": "A"}, {"name": "B"}] if start == 0 else [])

    records = asyncio.run(_client(handler, page_size=2).fetch_all("GP Team"))

    assert len(records) == 2
    assert len(calls) == 2


def test_fetch_with_offset_returns_single_page_and_passes_filters():
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"data": [{"name": "T1"}]})

    records = asyncio.run(
        _client(handler).fetch(
            "GP Task",
            fields=["name", "status"],
            filters={"status": "Open", "project": ["=", "P1"]},
            limit_start=10,
            limit_page_length=5,
        )
    )

    assert records == [{"name": "T1"}]
    assert len(seen) == 1
    params = seen[0].url.params
    assert params["limit_start"] == "10"
    assert params["status"] == "Open"
    assert json.loads(params["project"]) == ["=", "P1"]
    assert json.loads(params["fields"]) == ["name", "status"]


def test_unexpected_payload_shape_is_treated_as_empty():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"message": "ok"})

    assert asyncio.run(_client(handler).fetch_all("GP Task")) == []


def test_missing_api_key_fails_before_any_request():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json=[])

    with pytest.raises(GamePlanAuthError):
        asyncio.run(_client(handler, api_key=None).fetch_all("GP Task"))
    assert calls == []


def test_transient_errors_retry_then_give_up_after_three_failures():
    calls = []
    sleeps = []

    async def record_sleep(delay: float) -> None:
        sleeps.append(delay)

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503, json={"message": "unavailable"})

    client = _client(handler)
    client.sleep = record_sleep

    with pytest.raises(GamePlanTransientError):
        asyncio.run(client.fetch_all("GP Task"))
    assert len(calls) == 3
    assert sleeps == [1.0, 1.0]


def test_transient_error_recovers_on_retry():
    responses = [httpx.Response(502), httpx.Response(200, json=[{"name": "T1"}])]

    def handler(request: httpx.Request) -> httpx.Response:
        return responses.pop(0)

    records = asyncio.run(_client(handler, page_size=10).fetch_all("GP Task"))

    assert records == [{"name": "T1"}]


def test_auth_errors_are_not_retried():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(401, json={"message": "Invalid API key"})

    with pytest.raises(GamePlanAuthError):
        asyncio.run(_client(handler).fetch_all("GP Task"))
    assert len(calls) == 1


def test_not_found_is_a_request_error_without_retry():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(404)

    with pytest.raises(GamePlanRequestError):
        asyncio.run(_client(handler).fetch_all("GP Task"))
    assert len(calls) == 1


def test_check_connection_requests_one_team():
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"data": []})

    assert asyncio.run(_client(handler).check_connection()) is True
    assert seen[0].url.path == "/api/resource/GP Team"
    assert seen[0].url.params["limit_page_length"] == "1"


def test_repository_maps_records_and_skips_malformed_rows():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "data": [
                    {
                        "name": "T1",
                        "status": "Open",
                        "assigned_to": "a@x.com",
                        "modified": "2024-06-15 09:00:00",
                        "custom_field": 7,
                    },
                    "garbage",
                ]
            },
        )

    repository = GamePlanRecordRepositoryImpl(_client(handler))
    tasks = asyncio.run(repository.fetch_tasks())

    assert len(tasks) == 1
    task = tasks[0]
    assert task.assigned_to == "a@x.com"
    assert task.modified is not None
    assert task.extra == {"custom_field": 7}
    assert task.to_dict()["custom_field"] == 7
