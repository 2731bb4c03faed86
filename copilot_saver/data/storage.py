"""Storage factory — picks the file or SQL backend from settings."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine

from config.settings import Settings
from copilot_saver.core.interfaces import SnapshotStorage, TenantStorage
from copilot_saver.core.logging import get_logger
from copilot_saver.data.db import close_engine, create_engine, init_schema
from copilot_saver.data.file_store import FileSnapshotStorage, FileTenantStorage
from copilot_saver.data.sql_store import SqlSnapshotStorage, SqlTenantStorage

log = get_logger(__name__)


@dataclass
class StorageBackend:
    """The tenant registry and snapshot store of one configured backend."""

    name: str
    tenants: TenantStorage
    snapshots: SnapshotStorage
    engine: AsyncEngine | None = None

    async def start(self) -> None:
        if self.engine is not None:
            await init_schema(self.engine)
        log.info("storage_started", backend=self.name)

    async def close(self) -> None:
        if self.engine is not None:
            await close_engine(self.engine)
        log.info("storage_closed", backend=self.name)


def create_storage(settings: Settings) -> StorageBackend:
    """Build the storage backend named by ``settings.storage_backend``."""
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    if settings.storage_backend == "sql":
        engine = create_engine(settings.database_url.get_secret_value())
        return StorageBackend(
            name="sql",
            tenants=SqlTenantStorage(engine),
            snapshots=SqlSnapshotStorage(engine),
            engine=engine,
        )

    return StorageBackend(
        name="file",
        tenants=FileTenantStorage(settings.data_dir),
        snapshots=FileSnapshotStorage(settings.data_dir),
    )
