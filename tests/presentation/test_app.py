from fastapi.testclient import TestClient

from main import create_app


def test_health_and_root_endpoints():
    client = TestClient(create_app())

    assert client.get("/health").json() == {"status": "healthy"}
    root = client.get("/").json()
    assert "GamePlan Analytics" in root["message"]
    assert root["version"] == "1.0.0"


def test_title_drops_dev_suffix_in_production(monkeypatch):
    monkeypatch.setenv("ENV", "production")

    root = TestClient(create_app()).get("/").json()

    assert root["message"] == "GamePlan Analytics is running"
    assert root["environment"] == "production"
