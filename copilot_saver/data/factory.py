"""Data service factory — binds a tenant to a Usage, Seat, or Metrics service."""

from __future__ import annotations

import asyncio
from collections import defaultdict

from copilot_saver.core.interfaces import SnapshotStorage
from copilot_saver.core.types import DataKind
from copilot_saver.data.github_client import GitHubCopilotClient
from copilot_saver.data.services import (
    CopilotDataService,
    MetricsService,
    SeatService,
    UsageService,
)
from copilot_saver.saas.tenant import Tenant

_SERVICE_REGISTRY: dict[DataKind, type[CopilotDataService]] = {
    DataKind.USAGE: UsageService,
    DataKind.SEATS: SeatService,
    DataKind.METRICS: MetricsService,
}


class CopilotServiceFactory:
    """Creates request- or run-scoped data services.

    Construction does no I/O. All services for the same (tenant, kind) share
    one ``asyncio.Lock``, so their saves never overlap no matter whether the
    sync job or a request handler created them.

    Usage::

        factory = CopilotServiceFactory(client, storage.snapshots)
        usage = factory.create_usage_service(tenant)
        if await usage.save():
            rows = await usage.query(since="2024-06-01", page=1, per_page=30)
    """

    def __init__(self, client: GitHubCopilotClient, snapshots: SnapshotStorage) -> None:
        self._client = client
        self._snapshots = snapshots
        self._locks: defaultdict[tuple[str, DataKind], asyncio.Lock] = defaultdict(
            asyncio.Lock
        )

    def create(self, tenant: Tenant, kind: DataKind) -> CopilotDataService:
        service_cls = _SERVICE_REGISTRY[kind]
        return service_cls(
            tenant,
            self._client,
            self._snapshots,
            lock=self._locks[(tenant.key, kind)],
        )

    def create_usage_service(self, tenant: Tenant) -> UsageService:
        return self.create(tenant, DataKind.USAGE)  # type: ignore[return-value]

    def create_seat_service(self, tenant: Tenant) -> SeatService:
        return self.create(tenant, DataKind.SEATS)  # type: ignore[return-value]

    def create_metrics_service(self, tenant: Tenant) -> MetricsService:
        return self.create(tenant, DataKind.METRICS)  # type: ignore[return-value]
