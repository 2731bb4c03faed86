"""Tests for health check route."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from config.settings import Settings
from copilot_saver.api.main import create_app


@pytest.fixture()
def client(sql_settings: Settings) -> Iterator[TestClient]:
    """Create a test client on the SQL backend (SQLite file under tmp_path)."""
    with TestClient(create_app(sql_settings)) as test_client:
        yield test_client


class TestHealthEndpoint:
    def test_health_returns_ok(self, client: TestClient) -> None:
        response = client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["version"] == "0.1.0"

    def test_health_env(self, client: TestClient) -> None:
        data = client.get("/api/health").json()
        assert data["environment"] == "dev"
        assert data["storage_backend"] == "sql"

    def test_schema_created_on_startup(self, client: TestClient) -> None:
        assert client.get("/api/tenants").json() == []
