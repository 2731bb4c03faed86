"""Service container — every long-lived object the API and worker share.

Built once per process (``build_container``) and handed to the FastAPI app
via ``app.state.container`` or used directly by the standalone worker.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from config.settings import Settings, get_settings
from copilot_saver.core.logging import get_logger
from copilot_saver.data.facade import QueryFacade
from copilot_saver.data.factory import CopilotServiceFactory
from copilot_saver.data.github_client import GitHubCopilotClient
from copilot_saver.data.scheduler import SyncJob, SyncScheduler
from copilot_saver.data.storage import StorageBackend, create_storage

log = get_logger(__name__)


@dataclass
class Container:
    settings: Settings
    storage: StorageBackend
    client: GitHubCopilotClient
    factory: CopilotServiceFactory
    facade: QueryFacade
    sync_job: SyncJob
    scheduler: SyncScheduler

    async def start(self, *, with_scheduler: bool | None = None) -> None:
        """Open storage and, if enabled, start the periodic sync."""
        await self.storage.start()
        run_scheduler = self.settings.sync_enabled if with_scheduler is None else with_scheduler
        if run_scheduler:
            await self.scheduler.start()

    async def close(self) -> None:
        await self.scheduler.stop()
        await self.client.close()
        await self.storage.close()


def build_container(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Container:
    """Wire storage, upstream client, services, and the sync job. No I/O."""
    settings = settings or get_settings()
    storage = create_storage(settings)
    client = GitHubCopilotClient(settings, transport=transport)
    factory = CopilotServiceFactory(client, storage.snapshots)
    facade = QueryFacade(
        storage.tenants,
        factory,
        client,
        tenant_auto_save=settings.tenant_auto_save,
    )
    job = SyncJob(
        storage.tenants,
        factory,
        include_metrics=settings.sync_include_metrics,
        concurrency=settings.sync_concurrency,
    )
    scheduler = SyncScheduler(
        job,
        interval_hours=settings.sync_interval_hours,
        run_on_start=settings.sync_on_startup,
    )
    log.debug("container_built", storage_backend=storage.name)
    return Container(
        settings=settings,
        storage=storage,
        client=client,
        factory=factory,
        facade=facade,
        sync_job=job,
        scheduler=scheduler,
    )
