from datetime import datetime, timedelta

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.application.services.employee_query_service import EmployeeQueryApplicationService
from src.domain.entities.task import Task
from src.domain.entities.user_profile import UserProfile
from src.domain.exceptions import GamePlanAuthError
from src.domain.repositories.gameplan_record_repository import GamePlanRecordRepositoryInterface
from src.infrastructure.cache.record_cache import RecordCache
from src.infrastructure.gameplan.gameplan_client import GamePlanClient
from src.infrastructure.storage.api_key_store import ApiKeyStore
from src.presentation.api.analytics.config import Settings
from src.presentation.api.analytics.context import AnalyticsDependencies
from src.presentation.api.analytics_endpoints import get_analytics_dependencies, router


class StubRecordRepository(GamePlanRecordRepositoryInterface):
    def __init__(self):
        now = datetime.now().astimezone()
        self.tasks = [
            Task(name="T1", status="Open", assigned_to="a@x.com", due_date=now - timedelta(days=1), modified=now),
            Task(name="T2", status="Completed", assigned_to="b@x.com", modified=now - timedelta(days=2)),
        ]
        self.connection_error = None

    async def fetch_tasks(self):
        return self.tasks

    async def fetch_comments(self):
        return []

    async def fetch_activities(self):
        return []

    async def fetch_projects(self):
        return []

    async def fetch_teams(self):
        return []

    async def fetch_user_profiles(self):
        return [UserProfile(name="Ann", email="a@x.com", full_name="Ann Example")]

    async def test_connection(self):
        if self.connection_error is not None:
            raise self.connection_error
        return True


@pytest.fixture
def deps(tmp_path):
    settings = Settings(gameplan_api_key="", api_key_store_path=str(tmp_path / "credentials.json"))
    store = ApiKeyStore(settings.api_key_store_path)
    store.set("gameplan_api_key", "secret")
    repository = StubRecordRepository()
    cache = RecordCache(expiry_minutes=settings.cache_expiry_minutes)

    def api_key_provider():
        return store.get() or settings.gameplan_api_key or None

    return AnalyticsDependencies(
        settings=settings,
        api_key_store=store,
        gameplan_client=GamePlanClient(base_url=settings.gameplan_api_base_url, api_key_provider=api_key_provider),
        record_repository=repository,
        record_cache=cache,
        query_service=EmployeeQueryApplicationService(
            record_repository=repository,
            record_cache=cache,
            api_key_provider=api_key_provider,
        ),
    )


@pytest.fixture
def client(deps):
    app = FastAPI()
    app.include_router(router)
    app.dependency_overrides[get_analytics_dependencies] = lambda: deps
    return TestClient(app)


def test_backlog_query_returns_enriched_results(client):
    response = client.post("/analytics/queries", json={"query_type": "BACKLOG"})

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 1
    assert body["error"] is None
    employee = body["results"][0]["employee"]
    assert employee == {"email": "a@x.com", "name": "Ann", "full_name": "Ann Example"}
    assert body["results"][0]["backlog_count"] == 1


def test_unknown_query_type_returns_400_with_error(client):
    response = client.post("/analytics/queries", json={"query_type": "NOPE"})

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["kind"] == "validation"
    assert error["message"] == "Unknown query type: NOPE"


def test_missing_api_key_returns_401(client, deps):
    deps.api_key_store.clear("gameplan_api_key")

    response = client.post("/analytics/queries/refetch", json={"query_type": "BACKLOG"})

    assert response.status_code == 401
    assert response.json()["error"]["kind"] == "auth"


def test_dashboard_endpoints(client):
    performance = client.get("/analytics/performance").json()["metrics"]
    risks = client.get("/analytics/risks").json()["indicators"]
    trends = client.get("/analytics/trends/tasks", params={"days": 2}).json()
    activity_trends = client.get("/analytics/trends/activities").json()
    active = client.get("/analytics/employees/tasks").json()["employees"]

    assert {metric["employee"]["email"] for metric in performance} == {"a@x.com", "b@x.com"}
    assert [indicator["category"] for indicator in risks][0] == "overdue"
    assert len(trends["points"]) == 3
    assert trends["points"][-1]["value"] == 1
    assert len(activity_trends["points"]) == 8
    assert [row["employee"]["email"] for row in active] == ["a@x.com"]
    assert client.get("/analytics/teams").json() == {"teams": []}


def test_dashboard_endpoint_maps_auth_error_to_401(client, deps):
    deps.api_key_store.clear("gameplan_api_key")

    response = client.get("/analytics/performance")

    assert response.status_code == 401
    assert response.json()["error"]["kind"] == "auth"


def test_api_key_lifecycle(client, deps):
    assert client.get("/analytics/api-key/status").json() == {"configured": True, "source": "store"}

    assert client.delete("/analytics/api-key").json() == {"configured": False, "source": None}

    response = client.put("/analytics/api-key", json={"api_key": "  new-key  "})
    assert response.json()["configured"] is True
    assert deps.api_key_store.get() == "new-key"


def test_api_key_test_reports_failure_as_payload(client, deps):
    assert client.post("/analytics/api-key/test").json() == {"success": True, "error": None}

    deps.record_repository.connection_error = GamePlanAuthError("API key invalid", 401, "Unauthorized")
    body = client.post("/analytics/api-key/test").json()

    assert body["success"] is False
    assert body["error"]["kind"] == "auth"
