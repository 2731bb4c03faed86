"""End-to-end: register → read through the API → sync → deactivate, on both backends."""

from __future__ import annotations

import httpx
import pytest
from fastapi.testclient import TestClient

from config.settings import Settings
from copilot_saver.api import container as container_module
from copilot_saver.api import worker as worker_module
from copilot_saver.api.main import create_app
from copilot_saver.api.worker import run_once
from copilot_saver.data.storage import create_storage
from copilot_saver.saas.tenant import Tenant
from tests.fakes import FakeGitHub, metrics_day, seat, usage_day

_AUTH = {"Authorization": "Bearer ghp_acme"}


@pytest.fixture(params=["file", "sql"])
def backend_settings(request: pytest.FixtureRequest, settings: Settings, sql_settings: Settings) -> Settings:
    return settings if request.param == "file" else sql_settings


def _seed(github: FakeGitHub) -> None:
    github.add_scope("/orgs/acme", "ghp_acme")
    github.add_scope("/enterprises/bigcorp", "ghp_big")
    github.usage["/orgs/acme"] = [usage_day("2024-06-01"), usage_day("2024-06-02")]
    github.usage["/enterprises/bigcorp"] = [usage_day("2024-06-02")]
    github.metrics["/orgs/acme"] = [metrics_day("2024-06-02")]
    github.seats["/orgs/acme"] = [seat("alice", "2024-06-02T09:00:00Z")]
    github.seats["/enterprises/bigcorp"] = [seat("eve")]


class TestEndToEnd:
    def test_register_read_sync_deactivate(
        self, backend_settings: Settings, github: FakeGitHub, transport: httpx.MockTransport,
    ) -> None:
        _seed(github)
        app = create_app(backend_settings, transport=transport)

        with TestClient(app) as client:
            # Reading registers the tenant (auto-save) and refreshes the snapshot
            usage = client.get("/api/organization/acme/copilot/usage", headers=_AUTH)
            assert usage.status_code == 200
            assert [r["day"] for r in usage.json()] == ["2024-06-02", "2024-06-01"]

            added = client.post(
                "/api/tenants",
                json={
                    "scopeType": "enterprise",
                    "scopeName": "bigcorp",
                    "token": "ghp_big",
                    "isActive": True,
                },
            )
            assert added.status_code == 201
            names = sorted(t["scopeName"] for t in client.get("/api/tenants").json())
            assert names == ["acme", "bigcorp"]

            # One tenant breaks upstream; the other still syncs
            github.failing.add("/enterprises/bigcorp")
            github.usage["/orgs/acme"].append(usage_day("2024-06-03"))
            report = client.post("/api/sync").json()
            assert report["aborted"] is None
            by_tenant: dict[str, set[str]] = {}
            for outcome in report["outcomes"]:
                by_tenant.setdefault(outcome["tenant"], set()).add(outcome["status"])
            assert by_tenant == {
                "organization/acme": {"saved"},
                "enterprise/bigcorp": {"failed"},
            }

            # Newest synced day comes first
            usage = client.get(
                "/api/organization/acme/copilot/usage",
                params={"per_page": 1},
                headers=_AUTH,
            )
            assert [r["day"] for r in usage.json()] == ["2024-06-03"]

            removed = client.post(
                "/api/tenants/delete",
                json={"scopeType": "organization", "scopeName": "acme", "token": "ghp_acme"},
            )
            assert removed.status_code == 201
            names = [t["scopeName"] for t in client.get("/api/tenants").json()]
            assert names == ["bigcorp"]


class TestWorkerOnce:
    @pytest.mark.asyncio
    async def test_run_once_reports_failures(
        self,
        settings: Settings,
        github: FakeGitHub,
        transport: httpx.MockTransport,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        _seed(github)
        github.failing.add("/enterprises/bigcorp")

        storage = create_storage(settings)
        await storage.start()
        await storage.tenants.upsert(Tenant("organization", "acme", "ghp_acme"))
        await storage.tenants.upsert(Tenant("enterprise", "bigcorp", "ghp_big"))
        await storage.close()

        real_build = container_module.build_container
        monkeypatch.setattr(worker_module, "get_settings", lambda: settings)
        monkeypatch.setattr(
            worker_module,
            "build_container",
            lambda s: real_build(s, transport=transport),
        )

        failed = await run_once()

        assert failed == 3
