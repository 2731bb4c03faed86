"""Copilot data services — fetch from GitHub, persist a snapshot, query it back.

One service per data kind, each bound to a single tenant:

- ``UsageService``   daily usage summaries, overwritten per ``day``
- ``MetricsService`` daily metrics, overwritten per ``date``
- ``SeatService``    the seat roster, replaced wholesale on every save

Queries return the raw upstream records, most recent first.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from typing import Any, ClassVar

from copilot_saver.core.constants import DEFAULT_PAGE, DEFAULT_PER_PAGE
from copilot_saver.core.exceptions import ScopeValidationError
from copilot_saver.core.interfaces import SnapshotStorage
from copilot_saver.core.logging import get_logger
from copilot_saver.core.types import DataKind, SnapshotQuery, SnapshotRecord
from copilot_saver.data.github_client import GitHubCopilotClient
from copilot_saver.saas.tenant import Tenant

log = get_logger(__name__)


def normalize_day(value: Any) -> str | None:
    """Reduce a date or datetime string to its UTC ``YYYY-MM-DD``.

    Raises ``ScopeValidationError`` for anything that is not an ISO-8601 string.
    """
    if value is None or value == "":
        return None
    msg = f"Invalid date '{value}', expected ISO-8601 (YYYY-MM-DD)"
    if not isinstance(value, str):
        raise ScopeValidationError(msg, context={"value": repr(value)})
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        try:
            return date.fromisoformat(value).isoformat()
        except ValueError as exc:
            raise ScopeValidationError(msg, context={"value": value}) from exc
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date().isoformat()


def _normalize_timestamp(value: Any) -> str:
    """Normalize an upstream timestamp to UTC ISO-8601 so it sorts lexically."""
    if not value:
        return ""
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return str(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc).isoformat()


class CopilotDataService(ABC):
    """Fetch-persist-query pipeline for one tenant and one data kind."""

    kind: ClassVar[DataKind]

    def __init__(
        self,
        tenant: Tenant,
        client: GitHubCopilotClient,
        store: SnapshotStorage,
        lock: asyncio.Lock | None = None,
    ) -> None:
        self._tenant = tenant
        self._client = client
        self._store = store
        self._lock = lock or asyncio.Lock()

    @property
    def tenant(self) -> Tenant:
        return self._tenant

    @abstractmethod
    async def _fetch(self) -> list[dict[str, Any]]:
        """Pull the current upstream payload for the bound scope."""
        ...

    @abstractmethod
    def _to_record(self, item: dict[str, Any]) -> SnapshotRecord | None:
        """Map one upstream item to a stored record, or None when unusable."""
        ...

    async def _persist(self, records: list[SnapshotRecord]) -> int:
        return await self._store.replace_buckets(self._tenant.key, self.kind, records)

    async def save(self) -> bool:
        """Fetch the current snapshot and overwrite the stored one.

        Returns False (not an error) when the fetch succeeds but yields nothing
        to store. ``UpstreamError`` and ``PersistenceError`` propagate.
        """
        async with self._lock:
            items = await self._fetch()
            records = [r for r in (self._to_record(i) for i in items) if r is not None]
            if not records:
                log.info(
                    "snapshot_empty",
                    tenant=self._tenant.key,
                    kind=self.kind.value,
                    fetched=len(items),
                )
                return False

            stored = await self._persist(records)

        log.info(
            "snapshot_saved",
            tenant=self._tenant.key,
            kind=self.kind.value,
            records=stored,
        )
        return True

    async def query(
        self,
        since: str | None = None,
        until: str | None = None,
        page: int = DEFAULT_PAGE,
        per_page: int = DEFAULT_PER_PAGE,
    ) -> list[dict[str, Any]]:
        """Return page ``page`` of stored records in [since, until), newest first."""
        window = SnapshotQuery(
            since=normalize_day(since),
            until=normalize_day(until),
            page=page,
            per_page=per_page,
        )
        records = await self._store.query(self._tenant.key, self.kind, window)
        return [r.data for r in records]


class UsageService(CopilotDataService):
    kind = DataKind.USAGE

    async def _fetch(self) -> list[dict[str, Any]]:
        t = self._tenant
        return await self._client.fetch_usage(
            t.scope_type, t.scope_name, t.token, team_slug=t.team_slug,
        )

    def _to_record(self, item: dict[str, Any]) -> SnapshotRecord | None:
        try:
            day = normalize_day(item.get("day"))
        except ScopeValidationError:
            return None
        if day is None:
            return None
        return SnapshotRecord(bucket=day, sort_key=day, data=item)


class MetricsService(CopilotDataService):
    kind = DataKind.METRICS

    async def _fetch(self) -> list[dict[str, Any]]:
        t = self._tenant
        return await self._client.fetch_metrics(
            t.scope_type, t.scope_name, t.token, team_slug=t.team_slug,
        )

    def _to_record(self, item: dict[str, Any]) -> SnapshotRecord | None:
        try:
            day = normalize_day(item.get("date") or item.get("day"))
        except ScopeValidationError:
            return None
        if day is None:
            return None
        return SnapshotRecord(bucket=day, sort_key=day, data=item)


class SeatService(CopilotDataService):
    """Seats are a point-in-time roster: each save replaces the whole set."""

    kind = DataKind.SEATS

    async def _fetch(self) -> list[dict[str, Any]]:
        t = self._tenant
        return await self._client.fetch_seats(
            t.scope_type, t.scope_name, t.token, team_slug=t.team_slug,
        )

    def _to_record(self, item: dict[str, Any]) -> SnapshotRecord | None:
        assignee = item.get("assignee")
        login = assignee.get("login") if isinstance(assignee, dict) else None
        login = login or item.get("login")
        if not login:
            return None
        return SnapshotRecord(
            bucket=str(login),
            sort_key=_normalize_timestamp(item.get("last_activity_at")),
            data=item,
        )

    async def _persist(self, records: list[SnapshotRecord]) -> int:
        return await self._store.replace_all(self._tenant.key, self.kind, records)

    async def get_seat_data(
        self, page: int = DEFAULT_PAGE, per_page: int = DEFAULT_PER_PAGE,
    ) -> list[dict[str, Any]]:
        """Current roster page, most recently active first."""
        return await self.query(page=page, per_page=per_page)
