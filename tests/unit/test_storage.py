"""Tests for the tenant registry and snapshot stores — both backends."""

from __future__ import annotations

import json

import pytest

from config.settings import Settings
from copilot_saver.core.exceptions import PersistenceError, TenantNotFoundError
from copilot_saver.core.interfaces import SnapshotStorage, TenantStorage
from copilot_saver.core.types import DataKind, ScopeType, SnapshotQuery, SnapshotRecord
from copilot_saver.data.file_store import FileSnapshotStorage, FileTenantStorage
from copilot_saver.data.storage import StorageBackend, create_storage
from copilot_saver.saas.tenant import Tenant


@pytest.fixture(params=["file", "sql"])
def backend_settings(request: pytest.FixtureRequest, settings: Settings, sql_settings: Settings) -> Settings:
    return settings if request.param == "file" else sql_settings


async def _open(settings: Settings) -> StorageBackend:
    storage = create_storage(settings)
    await storage.start()
    return storage


def _org(name: str = "acme", token: str = "ghp_aaaa1111", team: str = "", active: bool = True) -> Tenant:
    return Tenant(ScopeType.ORGANIZATION, name, token, team_slug=team, is_active=active)


def _day(day: str) -> SnapshotRecord:
    return SnapshotRecord(bucket=day, sort_key=day, data={"day": day})


_DAYS = [f"2024-06-{d:02d}" for d in range(1, 11)]


# ── Factory ──────────────────────────────────────────────────────


class TestCreateStorage:
    def test_file_backend(self, settings: Settings) -> None:
        storage = create_storage(settings)
        assert storage.name == "file"
        assert storage.engine is None
        assert isinstance(storage.tenants, TenantStorage)
        assert isinstance(storage.snapshots, SnapshotStorage)
        assert settings.data_dir.is_dir()

    def test_sql_backend_shares_engine(self, sql_settings: Settings) -> None:
        storage = create_storage(sql_settings)
        assert storage.name == "sql"
        assert storage.engine is not None
        assert isinstance(storage.tenants, TenantStorage)
        assert isinstance(storage.snapshots, SnapshotStorage)


# ── Tenant registry ──────────────────────────────────────────────


class TestTenantRegistry:
    @pytest.mark.asyncio
    async def test_upsert_inserts_new_identity(self, backend_settings: Settings) -> None:
        storage = await _open(backend_settings)
        try:
            stored = await storage.tenants.upsert(_org())
            assert stored.key == "organization/acme"
            assert [t.key for t in await storage.tenants.list_active()] == ["organization/acme"]
        finally:
            await storage.close()

    @pytest.mark.asyncio
    async def test_upsert_same_identity_replaces_token(self, backend_settings: Settings) -> None:
        storage = await _open(backend_settings)
        try:
            await storage.tenants.upsert(_org(token="ghp_old00001"))
            await storage.tenants.upsert(_org(token="ghp_new00002"))
            tenants = await storage.tenants.list_all()
            assert len(tenants) == 1
            assert tenants[0].token == "ghp_new00002"
        finally:
            await storage.close()

    @pytest.mark.asyncio
    async def test_team_is_part_of_identity(self, backend_settings: Settings) -> None:
        storage = await _open(backend_settings)
        try:
            await storage.tenants.upsert(_org())
            await storage.tenants.upsert(_org(team="web"))
            await storage.tenants.upsert(_org(team="api"))
            keys = sorted(t.key for t in await storage.tenants.list_active())
            assert keys == [
                "organization/acme",
                "organization/acme/team/api",
                "organization/acme/team/web",
            ]
        finally:
            await storage.close()

    @pytest.mark.asyncio
    async def test_remove_with_team_only_touches_that_team(self, backend_settings: Settings) -> None:
        storage = await _open(backend_settings)
        try:
            await storage.tenants.upsert(_org(team="web"))
            await storage.tenants.upsert(_org(team="api"))
            count = await storage.tenants.remove("organization", "acme", "web")
            assert count == 1
            active = [t.key for t in await storage.tenants.list_active()]
            assert active == ["organization/acme/team/api"]
            assert len(await storage.tenants.list_all()) == 2
        finally:
            await storage.close()

    @pytest.mark.asyncio
    async def test_remove_without_team_deactivates_whole_scope(self, backend_settings: Settings) -> None:
        storage = await _open(backend_settings)
        try:
            await storage.tenants.upsert(_org())
            await storage.tenants.upsert(_org(team="web"))
            await storage.tenants.upsert(_org(name="other"))
            count = await storage.tenants.remove("organization", "acme")
            assert count == 2
            assert [t.key for t in await storage.tenants.list_active()] == ["organization/other"]
        finally:
            await storage.close()

    @pytest.mark.asyncio
    async def test_remove_unknown_raises_not_found(self, backend_settings: Settings) -> None:
        storage = await _open(backend_settings)
        try:
            with pytest.raises(TenantNotFoundError):
                await storage.tenants.remove("organization", "ghost")
        finally:
            await storage.close()

    @pytest.mark.asyncio
    async def test_remove_twice_raises_not_found(self, backend_settings: Settings) -> None:
        storage = await _open(backend_settings)
        try:
            await storage.tenants.upsert(_org())
            await storage.tenants.remove("organization", "acme")
            with pytest.raises(TenantNotFoundError):
                await storage.tenants.remove("organization", "acme")
        finally:
            await storage.close()

    @pytest.mark.asyncio
    async def test_upsert_reactivates(self, backend_settings: Settings) -> None:
        storage = await _open(backend_settings)
        try:
            await storage.tenants.upsert(_org())
            await storage.tenants.remove("organization", "acme")
            await storage.tenants.upsert(_org())
            assert len(await storage.tenants.list_active()) == 1
        finally:
            await storage.close()


class TestFileTenantStorage:
    @pytest.mark.asyncio
    async def test_corrupt_file_raises_persistence_error(self, settings: Settings) -> None:
        settings.data_dir.mkdir(parents=True)
        store = FileTenantStorage(settings.data_dir)
        store.path.write_text("{not json", encoding="utf-8")
        with pytest.raises(PersistenceError):
            await store.list_all()

    @pytest.mark.asyncio
    async def test_writes_are_plain_json(self, settings: Settings) -> None:
        store = FileTenantStorage(settings.data_dir)
        await store.upsert(_org())
        raw = json.loads(store.path.read_text(encoding="utf-8"))
        assert raw[0]["scope_name"] == "acme"
        assert raw[0]["is_active"] is True
        assert not list(settings.data_dir.glob(".tenants.json.*"))


# ── Snapshot store ───────────────────────────────────────────────


class TestSnapshotStore:
    @pytest.mark.asyncio
    async def test_replace_buckets_is_idempotent(self, backend_settings: Settings) -> None:
        storage = await _open(backend_settings)
        try:
            records = [_day(d) for d in _DAYS[:3]]
            await storage.snapshots.replace_buckets("t", DataKind.USAGE, records)
            first = await storage.snapshots.query("t", DataKind.USAGE, SnapshotQuery())
            await storage.snapshots.replace_buckets("t", DataKind.USAGE, records)
            second = await storage.snapshots.query("t", DataKind.USAGE, SnapshotQuery())
            assert [r.data for r in first] == [r.data for r in second]
            assert len(second) == 3
        finally:
            await storage.close()

    @pytest.mark.asyncio
    async def test_replace_buckets_overwrites_same_day_and_keeps_others(
        self, backend_settings: Settings,
    ) -> None:
        storage = await _open(backend_settings)
        try:
            await storage.snapshots.replace_buckets(
                "t", DataKind.USAGE, [_day("2024-06-01"), _day("2024-06-02")],
            )
            updated = SnapshotRecord("2024-06-02", "2024-06-02", {"day": "2024-06-02", "v": 2})
            await storage.snapshots.replace_buckets("t", DataKind.USAGE, [updated])
            rows = await storage.snapshots.query("t", DataKind.USAGE, SnapshotQuery())
            assert [r.data for r in rows] == [
                {"day": "2024-06-02", "v": 2},
                {"day": "2024-06-01"},
            ]
        finally:
            await storage.close()

    @pytest.mark.asyncio
    async def test_replace_all_drops_missing_buckets(self, backend_settings: Settings) -> None:
        storage = await _open(backend_settings)
        try:
            await storage.snapshots.replace_all(
                "t", DataKind.SEATS,
                [SnapshotRecord("alice", "", {"login": "alice"}),
                 SnapshotRecord("bob", "", {"login": "bob"})],
            )
            await storage.snapshots.replace_all(
                "t", DataKind.SEATS, [SnapshotRecord("carol", "", {"login": "carol"})],
            )
            rows = await storage.snapshots.query("t", DataKind.SEATS, SnapshotQuery())
            assert [r.bucket for r in rows] == ["carol"]
        finally:
            await storage.close()

    @pytest.mark.asyncio
    async def test_pagination_is_disjoint_descending_cover(self, backend_settings: Settings) -> None:
        storage = await _open(backend_settings)
        try:
            await storage.snapshots.replace_buckets("t", DataKind.USAGE, [_day(d) for d in _DAYS])
            pages = [
                [r.bucket for r in await storage.snapshots.query(
                    "t", DataKind.USAGE, SnapshotQuery(page=p, per_page=4),
                )]
                for p in (1, 2, 3)
            ]
            assert [len(p) for p in pages] == [4, 4, 2]
            flat = [b for p in pages for b in p]
            assert flat == sorted(_DAYS, reverse=True)
            past_end = await storage.snapshots.query(
                "t", DataKind.USAGE, SnapshotQuery(page=4, per_page=4),
            )
            assert past_end == []
        finally:
            await storage.close()

    @pytest.mark.asyncio
    async def test_time_range_is_half_open(self, backend_settings: Settings) -> None:
        storage = await _open(backend_settings)
        try:
            await storage.snapshots.replace_buckets("t", DataKind.USAGE, [_day(d) for d in _DAYS])
            rows = await storage.snapshots.query(
                "t", DataKind.USAGE, SnapshotQuery(since="2024-06-03", until="2024-06-06"),
            )
            assert [r.bucket for r in rows] == ["2024-06-05", "2024-06-04", "2024-06-03"]
        finally:
            await storage.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "window",
        [
            SnapshotQuery(since="2024-06-05", until="2024-06-05"),
            SnapshotQuery(since="2024-06-08", until="2024-06-02"),
            SnapshotQuery(page=0),
            SnapshotQuery(per_page=0),
            SnapshotQuery(page=10**18, per_page=60),
        ],
    )
    async def test_empty_windows_return_nothing(
        self, backend_settings: Settings, window: SnapshotQuery,
    ) -> None:
        storage = await _open(backend_settings)
        try:
            await storage.snapshots.replace_buckets("t", DataKind.USAGE, [_day(d) for d in _DAYS])
            assert await storage.snapshots.query("t", DataKind.USAGE, window) == []
        finally:
            await storage.close()

    @pytest.mark.asyncio
    async def test_tenants_and_kinds_are_isolated(self, backend_settings: Settings) -> None:
        storage = await _open(backend_settings)
        try:
            await storage.snapshots.replace_buckets("a", DataKind.USAGE, [_day("2024-06-01")])
            await storage.snapshots.replace_buckets("b", DataKind.METRICS, [_day("2024-06-02")])
            assert await storage.snapshots.query("a", DataKind.METRICS, SnapshotQuery()) == []
            assert await storage.snapshots.query("b", DataKind.USAGE, SnapshotQuery()) == []
            assert len(await storage.snapshots.query("a", DataKind.USAGE, SnapshotQuery())) == 1
        finally:
            await storage.close()


class TestFileSnapshotStorage:
    def test_path_quotes_tenant_key(self, settings: Settings) -> None:
        store = FileSnapshotStorage(settings.data_dir)
        path = store.path_for("organization/acme/team/web", DataKind.USAGE)
        assert path.parent.name == "usage"
        assert "/" not in path.name
