"""SQLAlchemy-backed storage — tenant registry and Copilot snapshots.

Each public call runs inside a single ``engine.begin()`` transaction, so a
snapshot replace (delete + insert) is never visible half-done. Writers are
additionally serialized in-process with ``asyncio.Lock``.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from copilot_saver.core.constants import MAX_QUERY_OFFSET
from copilot_saver.core.exceptions import PersistenceError, TenantNotFoundError
from copilot_saver.core.logging import get_logger
from copilot_saver.core.types import DataKind, ScopeType, SnapshotQuery, SnapshotRecord
from copilot_saver.data.db import copilot_snapshots, tenants
from copilot_saver.saas.tenant import Tenant

log = get_logger(__name__)


def _aware(value: datetime) -> datetime:
    """SQLite drops tzinfo; everything stored is UTC."""
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class SqlTenantStorage:
    """Async SQL-backed tenant registry."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._lock = asyncio.Lock()

    async def list_all(self) -> list[Tenant]:
        return await self._select(select(tenants).order_by(tenants.c.id))

    async def list_active(self) -> list[Tenant]:
        return await self._select(
            select(tenants).where(tenants.c.is_active.is_(True)).order_by(tenants.c.id)
        )

    async def _select(self, stmt: Any) -> list[Tenant]:
        try:
            async with self._engine.begin() as conn:
                result = await conn.execute(stmt)
                rows = result.mappings().all()
        except SQLAlchemyError as exc:
            msg = f"Failed to read tenant registry: {exc}"
            raise PersistenceError(msg) from exc
        return [self._row_to_tenant(r) for r in rows]

    async def upsert(self, tenant: Tenant) -> Tenant:
        now = datetime.now(timezone.utc)
        scope_type, scope_name, team_slug = tenant.identity
        match = (
            (tenants.c.scope_type == scope_type)
            & (tenants.c.scope_name == scope_name)
            & (tenants.c.team_slug == team_slug)
        )

        async with self._lock:
            try:
                async with self._engine.begin() as conn:
                    result = await conn.execute(
                        update(tenants)
                        .where(match)
                        .values(token=tenant.token, is_active=tenant.is_active, updated_at=now)
                    )
                    if result.rowcount == 0:
                        await conn.execute(
                            insert(tenants).values(
                                scope_type=scope_type,
                                scope_name=scope_name,
                                team_slug=team_slug,
                                token=tenant.token,
                                is_active=tenant.is_active,
                                created_at=tenant.created_at,
                                updated_at=now,
                            )
                        )
                    row = (await conn.execute(select(tenants).where(match))).mappings().one()
            except SQLAlchemyError as exc:
                msg = f"Failed to save tenant {tenant.key}: {exc}"
                raise PersistenceError(msg, context={"tenant": tenant.key}) from exc

        stored = self._row_to_tenant(row)
        log.info("tenant_upserted", tenant=stored.key, is_active=stored.is_active)
        return stored

    async def remove(
        self, scope_type: str, scope_name: str, team_slug: str = "",
    ) -> int:
        cond = (
            (tenants.c.scope_type == scope_type)
            & (tenants.c.scope_name == scope_name)
            & tenants.c.is_active.is_(True)
        )
        if team_slug:
            cond = cond & (tenants.c.team_slug == team_slug)

        async with self._lock:
            try:
                async with self._engine.begin() as conn:
                    result = await conn.execute(
                        update(tenants)
                        .where(cond)
                        .values(is_active=False, updated_at=datetime.now(timezone.utc))
                    )
                    count = result.rowcount
            except SQLAlchemyError as exc:
                msg = f"Failed to remove tenant {scope_type}/{scope_name}: {exc}"
                raise PersistenceError(msg) from exc

        if count == 0:
            msg = f"No active tenant {scope_type}/{scope_name}" + (
                f" with team {team_slug}" if team_slug else ""
            )
            raise TenantNotFoundError(
                msg, context={"scope_name": scope_name, "team_slug": team_slug},
            )

        log.info(
            "tenant_deactivated",
            scope_type=scope_type,
            scope_name=scope_name,
            team=team_slug or None,
            records=count,
        )
        return count

    @staticmethod
    def _row_to_tenant(r: Mapping[str, Any]) -> Tenant:
        """Convert a DB row mapping to a Tenant dataclass."""
        return Tenant(
            scope_type=ScopeType(r["scope_type"]),
            scope_name=r["scope_name"],
            token=r["token"],
            team_slug=r["team_slug"] or "",
            is_active=bool(r["is_active"]),
            created_at=_aware(r["created_at"]),
            updated_at=_aware(r["updated_at"]),
        )


class SqlSnapshotStorage:
    """Async SQL-backed snapshot store (one row per tenant/kind/bucket)."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._locks: defaultdict[tuple[str, DataKind], asyncio.Lock] = defaultdict(
            asyncio.Lock
        )

    @staticmethod
    def _rows(
        tenant_key: str, kind: DataKind, records: list[SnapshotRecord],
    ) -> list[dict[str, Any]]:
        unique = {r.bucket: r for r in records}
        return [
            {
                "tenant_key": tenant_key,
                "kind": kind.value,
                "bucket": r.bucket,
                "sort_key": r.sort_key,
                "data": r.data,
                "fetched_at": r.fetched_at,
            }
            for r in unique.values()
        ]

    async def _replace(
        self,
        tenant_key: str,
        kind: DataKind,
        records: list[SnapshotRecord],
        *,
        whole: bool,
    ) -> int:
        rows = self._rows(tenant_key, kind, records)
        stmt = delete(copilot_snapshots).where(
            (copilot_snapshots.c.tenant_key == tenant_key)
            & (copilot_snapshots.c.kind == kind.value)
        )
        if not whole:
            if not rows:
                return 0
            stmt = stmt.where(copilot_snapshots.c.bucket.in_([r["bucket"] for r in rows]))

        async with self._locks[(tenant_key, kind)]:
            try:
                async with self._engine.begin() as conn:
                    await conn.execute(stmt)
                    if rows:
                        await conn.execute(insert(copilot_snapshots), rows)
            except SQLAlchemyError as exc:
                msg = f"Failed to write {kind.value} snapshot for {tenant_key}: {exc}"
                raise PersistenceError(msg, context={"tenant": tenant_key}) from exc
        return len(rows)

    async def replace_buckets(
        self, tenant_key: str, kind: DataKind, records: list[SnapshotRecord],
    ) -> int:
        return await self._replace(tenant_key, kind, records, whole=False)

    async def replace_all(
        self, tenant_key: str, kind: DataKind, records: list[SnapshotRecord],
    ) -> int:
        return await self._replace(tenant_key, kind, records, whole=True)

    async def query(
        self, tenant_key: str, kind: DataKind, window: SnapshotQuery,
    ) -> list[SnapshotRecord]:
        if window.is_empty:
            return []

        c = copilot_snapshots.c
        stmt = select(copilot_snapshots).where(
            (c.tenant_key == tenant_key) & (c.kind == kind.value)
        )
        if window.since is not None:
            stmt = stmt.where(c.sort_key >= window.since)
        if window.until is not None:
            stmt = stmt.where(c.sort_key < window.until)
        stmt = (
            stmt.order_by(c.sort_key.desc(), c.bucket.asc())
            .offset(window.offset)
            .limit(min(window.per_page, MAX_QUERY_OFFSET))
        )

        try:
            async with self._engine.begin() as conn:
                rows = (await conn.execute(stmt)).mappings().all()
        except SQLAlchemyError as exc:
            msg = f"Failed to read {kind.value} snapshot for {tenant_key}: {exc}"
            raise PersistenceError(msg, context={"tenant": tenant_key}) from exc

        return [
            SnapshotRecord(
                bucket=r["bucket"],
                sort_key=r["sort_key"],
                data=dict(r["data"]),
                fetched_at=_aware(r["fetched_at"]),
            )
            for r in rows
        ]
