"""Tests for the FastAPI service mode."""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from codeindex.pipeline import ExtractionPipeline
from codeindex.service import create_app
from tests._fixtures.rails_app import RailsAppBuilder


@pytest.fixture
def client() -> TestClient:
    return TestClient(create_app(lambda: ExtractionPipeline()))


def test_health_endpoint(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_extract_endpoint(client: TestClient, rails_app: RailsAppBuilder) -> None:
    rails_app.write(
        {
            "app/services/ping_service.rb": "class PingService\n  def call\n    true\n  end\nend\n",
            "config/recurring.yml": "cleanup:\n  class: CleanupJob\n  schedule: every hour\n",
        }
    )

    response = client.post("/extract", json={"path": str(rails_app.path())})

    assert response.status_code == 200
    data = response.json()
    assert data["counts"] == {"scheduled_job": 1, "service": 1}
    assert {unit["identifier"] for unit in data["units"]} == {"scheduled:cleanup", "PingService"}
    assert data["failures"] == []


def test_extract_endpoint_filters_extractors(client: TestClient, rails_app: RailsAppBuilder) -> None:
    rails_app.write({"app/services/ping_service.rb": "class PingService\n  def call; end\nend\n"})

    response = client.post(
        "/extract", json={"path": str(rails_app.path()), "extractors": ["scheduled_jobs"]}
    )

    assert response.status_code == 200
    assert response.json()["units"] == []


def test_extract_endpoint_missing_path(client: TestClient, tmp_path: Path) -> None:
    response = client.post("/extract", json={"path": str(tmp_path / "missing")})
    assert response.status_code == 404


def test_extract_endpoint_unknown_extractor(client: TestClient, rails_app: RailsAppBuilder) -> None:
    response = client.post(
        "/extract", json={"path": str(rails_app.path()), "extractors": ["routes"]}
    )
    assert response.status_code == 400
