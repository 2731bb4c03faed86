"""Flat-file JSON storage — tenant registry and Copilot snapshots.

File layout::

    data/
    ├── tenants.json                         # every registered tenant
    └── snapshots/
        ├── usage/organization%2Facme.json   # one file per tenant per kind
        ├── seats/...
        └── metrics/...

Every write goes to a temp file and is moved into place with ``os.replace``,
so readers see either the old or the new file, never a partial one. Writers
are serialized per file with an ``asyncio.Lock``; blocking file I/O runs in
a worker thread.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import os
import tempfile
from collections import defaultdict
from pathlib import Path
from typing import Any
from urllib.parse import quote

from copilot_saver.core.exceptions import PersistenceError, TenantNotFoundError
from copilot_saver.core.logging import get_logger
from copilot_saver.core.types import DataKind, SnapshotQuery, SnapshotRecord
from copilot_saver.saas.tenant import Tenant

log = get_logger(__name__)


def _read_json(path: Path, default: Any) -> Any:
    if not path.exists():
        return default
    with path.open(encoding="utf-8") as fh:
        return json.load(fh)


def _write_json_atomic(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(payload, fh, indent=2, default=str)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp)
        raise


class FileTenantStorage:
    """Tenant registry persisted to a single ``tenants.json`` file."""

    def __init__(self, data_dir: Path) -> None:
        self._path = data_dir / "tenants.json"
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    async def _load(self) -> list[Tenant]:
        try:
            raw = await asyncio.to_thread(_read_json, self._path, [])
            return [Tenant.from_dict(item) for item in raw]
        except (OSError, ValueError, KeyError, TypeError) as exc:
            msg = f"Failed to read tenant registry: {exc}"
            raise PersistenceError(msg, context={"path": str(self._path)}) from exc

    async def _store(self, tenants: list[Tenant]) -> None:
        try:
            await asyncio.to_thread(
                _write_json_atomic, self._path, [t.to_dict() for t in tenants],
            )
        except (OSError, TypeError) as exc:
            msg = f"Failed to write tenant registry: {exc}"
            raise PersistenceError(msg, context={"path": str(self._path)}) from exc

    async def list_all(self) -> list[Tenant]:
        return await self._load()

    async def list_active(self) -> list[Tenant]:
        return [t for t in await self._load() if t.is_active]

    async def upsert(self, tenant: Tenant) -> Tenant:
        async with self._lock:
            tenants = await self._load()
            for i, existing in enumerate(tenants):
                if existing.identity == tenant.identity:
                    stored = existing.with_updates(
                        token=tenant.token, is_active=tenant.is_active,
                    )
                    tenants[i] = stored
                    break
            else:
                stored = tenant
                tenants.append(stored)
            await self._store(tenants)

        log.info("tenant_upserted", tenant=stored.key, is_active=stored.is_active)
        return stored

    async def remove(
        self, scope_type: str, scope_name: str, team_slug: str = "",
    ) -> int:
        async with self._lock:
            tenants = await self._load()
            hits = [
                i for i, t in enumerate(tenants)
                if t.is_active
                and t.scope_type.value == scope_type
                and t.scope_name == scope_name
                and (not team_slug or t.team_slug == team_slug)
            ]
            if not hits:
                msg = f"No active tenant {scope_type}/{scope_name}" + (
                    f" with team {team_slug}" if team_slug else ""
                )
                raise TenantNotFoundError(
                    msg,
                    context={"scope_name": scope_name, "team_slug": team_slug},
                )
            for i in hits:
                tenants[i] = tenants[i].with_updates(is_active=False)
            await self._store(tenants)

        log.info(
            "tenant_deactivated",
            scope_type=scope_type,
            scope_name=scope_name,
            team=team_slug or None,
            records=len(hits),
        )
        return len(hits)


class FileSnapshotStorage:
    """Snapshot store with one JSON file per (tenant, kind)."""

    def __init__(self, data_dir: Path) -> None:
        self._root = data_dir / "snapshots"
        self._locks: defaultdict[tuple[str, DataKind], asyncio.Lock] = defaultdict(
            asyncio.Lock
        )

    def path_for(self, tenant_key: str, kind: DataKind) -> Path:
        return self._root / kind.value / f"{quote(tenant_key, safe='')}.json"

    async def _load(self, tenant_key: str, kind: DataKind) -> list[SnapshotRecord]:
        path = self.path_for(tenant_key, kind)
        try:
            raw = await asyncio.to_thread(_read_json, path, [])
            return [SnapshotRecord.from_dict(item) for item in raw]
        except (OSError, ValueError, KeyError, TypeError) as exc:
            msg = f"Failed to read {kind.value} snapshot: {exc}"
            raise PersistenceError(msg, context={"path": str(path)}) from exc

    async def _store(
        self, tenant_key: str, kind: DataKind, records: list[SnapshotRecord],
    ) -> None:
        path = self.path_for(tenant_key, kind)
        try:
            await asyncio.to_thread(
                _write_json_atomic, path, [r.to_dict() for r in records],
            )
        except (OSError, TypeError) as exc:
            msg = f"Failed to write {kind.value} snapshot: {exc}"
            raise PersistenceError(msg, context={"path": str(path)}) from exc

    async def replace_buckets(
        self, tenant_key: str, kind: DataKind, records: list[SnapshotRecord],
    ) -> int:
        async with self._locks[(tenant_key, kind)]:
            merged = {r.bucket: r for r in await self._load(tenant_key, kind)}
            merged.update((r.bucket, r) for r in records)
            await self._store(tenant_key, kind, list(merged.values()))
        return len(records)

    async def replace_all(
        self, tenant_key: str, kind: DataKind, records: list[SnapshotRecord],
    ) -> int:
        unique = {r.bucket: r for r in records}
        async with self._locks[(tenant_key, kind)]:
            await self._store(tenant_key, kind, list(unique.values()))
        return len(unique)

    async def query(
        self, tenant_key: str, kind: DataKind, window: SnapshotQuery,
    ) -> list[SnapshotRecord]:
        if window.is_empty:
            return []

        records = await self._load(tenant_key, kind)
        if window.since is not None:
            records = [r for r in records if r.sort_key >= window.since]
        if window.until is not None:
            records = [r for r in records if r.sort_key < window.until]

        # bucket ascending breaks ties, then a stable sort on sort_key descending
        records.sort(key=lambda r: r.bucket)
        records.sort(key=lambda r: r.sort_key, reverse=True)
        return records[window.offset:window.offset + window.per_page]
