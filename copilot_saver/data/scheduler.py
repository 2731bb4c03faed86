"""Tenant sync job and its periodic scheduler.

``SyncJob`` refreshes every active tenant's snapshots once per run:

    Idle --run()--> Running --(all tenants attempted)--> Idle

A ``run()`` arriving while another run is in progress returns ``None``
immediately (single-flight). Every (tenant, kind) save is attempted on its
own: a failure is recorded in the ``SyncReport`` and the loop moves on. Only
a failure to list tenants aborts the run.

``SyncScheduler`` calls ``SyncJob.run`` on a fixed interval (12 h default).
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from copilot_saver.core.constants import DEFAULT_SYNC_INTERVAL_HOURS
from copilot_saver.core.interfaces import TenantStorage
from copilot_saver.core.logging import get_logger
from copilot_saver.core.types import DataKind
from copilot_saver.data.factory import CopilotServiceFactory
from copilot_saver.saas.tenant import Tenant

log = get_logger(__name__)


class SyncState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class OutcomeStatus(str, Enum):
    SAVED = "saved"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass(frozen=True)
class KindOutcome:
    """Result of one save attempt for one tenant and one data kind."""

    tenant: str
    kind: DataKind
    status: OutcomeStatus
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is not OutcomeStatus.FAILED


@dataclass
class SyncReport:
    """Batch-run report: one outcome per attempted (tenant, kind)."""

    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: datetime | None = None
    outcomes: list[KindOutcome] = field(default_factory=list)
    aborted: str | None = None

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.ok)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.ok)

    @property
    def tenants(self) -> list[str]:
        return list(dict.fromkeys(o.tenant for o in self.outcomes))

    def for_tenant(self, tenant_key: str) -> list[KindOutcome]:
        return [o for o in self.outcomes if o.tenant == tenant_key]


class SyncJob:
    """Refresh usage, seats, and (optionally) metrics for all active tenants."""

    def __init__(
        self,
        registry: TenantStorage,
        factory: CopilotServiceFactory,
        include_metrics: bool = True,
        concurrency: int = 1,
    ) -> None:
        self._registry = registry
        self._factory = factory
        self._kinds: tuple[DataKind, ...] = (DataKind.USAGE, DataKind.SEATS) + (
            (DataKind.METRICS,) if include_metrics else ()
        )
        self._semaphore = asyncio.Semaphore(max(1, concurrency))
        self._state = SyncState.IDLE
        self._last_report: SyncReport | None = None

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def last_report(self) -> SyncReport | None:
        return self._last_report

    @property
    def kinds(self) -> tuple[DataKind, ...]:
        return self._kinds

    async def run(self) -> SyncReport | None:
        """Run one sync pass. Returns None if a pass is already running."""
        if self._state is SyncState.RUNNING:
            log.info("sync_skipped_already_running")
            return None

        self._state = SyncState.RUNNING
        report = SyncReport()
        log.info("sync_starting")
        try:
            try:
                tenants = await self._registry.list_active()
            except Exception as exc:
                report.aborted = str(exc)
                log.error("sync_tenant_listing_failed", error=str(exc))
                return report

            results = await asyncio.gather(
                *(self._sync_tenant(t) for t in tenants)
            )
            for outcomes in results:
                report.outcomes.extend(outcomes)
            return report
        finally:
            report.finished_at = datetime.now(timezone.utc)
            self._last_report = report
            self._state = SyncState.IDLE
            log.info(
                "sync_completed",
                succeeded=report.succeeded,
                failed=report.failed,
                aborted=report.aborted,
            )

    async def _sync_tenant(self, tenant: Tenant) -> list[KindOutcome]:
        outcomes: list[KindOutcome] = []
        async with self._semaphore:
            for kind in self._kinds:
                outcomes.append(await self._sync_kind(tenant, kind))
        return outcomes

    async def _sync_kind(self, tenant: Tenant, kind: DataKind) -> KindOutcome:
        service = self._factory.create(tenant, kind)
        try:
            saved = await service.save()
        except Exception as exc:
            log.error(
                "sync_kind_failed",
                tenant=tenant.key,
                kind=kind.value,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return KindOutcome(tenant.key, kind, OutcomeStatus.FAILED, error=str(exc))

        status = OutcomeStatus.SAVED if saved else OutcomeStatus.EMPTY
        log.info("sync_kind_done", tenant=tenant.key, kind=kind.value, status=status.value)
        return KindOutcome(tenant.key, kind, status)


class SyncScheduler:
    """Run a ``SyncJob`` every ``interval_hours``.

    A trigger that fires while a run is in progress is a no-op (the job's
    single-flight gate), so overlapping runs never write concurrently.
    """

    def __init__(
        self,
        job: SyncJob,
        interval_hours: float = DEFAULT_SYNC_INTERVAL_HOURS,
        run_on_start: bool = False,
    ) -> None:
        self._job = job
        self._interval_seconds = interval_hours * 3600
        self._run_on_start = run_on_start
        self._running = False
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the periodic loop in the background."""
        if self._task is not None:
            return
        self._running = True
        self._task = asyncio.create_task(self._loop(), name="copilot_sync")
        log.info(
            "scheduler_started",
            interval_hours=self._interval_seconds / 3600,
            run_on_start=self._run_on_start,
        )

    async def stop(self) -> None:
        """Stop the loop; an in-flight run is cancelled."""
        self._running = False
        if self._task is not None:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None
        log.info("scheduler_stopped")

    async def _loop(self) -> None:
        first = True
        while self._running:
            if not first or self._run_on_start:
                try:
                    await self._job.run()
                except asyncio.CancelledError:
                    break
                except Exception as exc:
                    log.error("sync_cycle_failed", error=str(exc))
            first = False

            try:
                await asyncio.sleep(self._interval_seconds)
            except asyncio.CancelledError:
                break
