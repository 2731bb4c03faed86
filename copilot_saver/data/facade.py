"""Query facade — the request path: validate, register, refresh, then read.

Every read is a write-through refresh::

    tenant.validate()          InvalidCredentialError -> 400
    registry.upsert(tenant)    only when auto-save is on
    service.save()             UpstreamError / PersistenceError -> 500
    service.query(...)         page of stored records, newest first
"""

from __future__ import annotations

from typing import Any

from copilot_saver.core.constants import DEFAULT_PAGE, DEFAULT_PER_PAGE
from copilot_saver.core.exceptions import InvalidCredentialError, PersistenceError
from copilot_saver.core.interfaces import TenantStorage
from copilot_saver.core.logging import get_logger
from copilot_saver.core.types import DataKind
from copilot_saver.data.factory import CopilotServiceFactory
from copilot_saver.data.github_client import GitHubCopilotClient
from copilot_saver.data.services import CopilotDataService, normalize_day
from copilot_saver.saas.tenant import Tenant

log = get_logger(__name__)


class QueryFacade:
    """Serves usage, metrics, and seat reads, and tenant registration."""

    def __init__(
        self,
        registry: TenantStorage,
        factory: CopilotServiceFactory,
        client: GitHubCopilotClient,
        tenant_auto_save: bool = True,
    ) -> None:
        self._registry = registry
        self._factory = factory
        self._client = client
        self._auto_save = tenant_auto_save

    # ── Reads ────────────────────────────────────────────────────

    async def get_usage(
        self,
        tenant: Tenant,
        since: str | None = None,
        until: str | None = None,
        page: int = DEFAULT_PAGE,
        per_page: int = DEFAULT_PER_PAGE,
    ) -> list[dict[str, Any]]:
        service = await self._refresh(tenant, DataKind.USAGE, since, until)
        return await service.query(since, until, page=page, per_page=per_page)

    async def get_metrics(
        self,
        tenant: Tenant,
        since: str | None = None,
        until: str | None = None,
        page: int = DEFAULT_PAGE,
        per_page: int = DEFAULT_PER_PAGE,
    ) -> list[dict[str, Any]]:
        service = await self._refresh(tenant, DataKind.METRICS, since, until)
        return await service.query(since, until, page=page, per_page=per_page)

    async def get_seats(
        self,
        tenant: Tenant,
        page: int = DEFAULT_PAGE,
        per_page: int = DEFAULT_PER_PAGE,
    ) -> list[dict[str, Any]]:
        service = await self._refresh(tenant, DataKind.SEATS)
        return await service.query(page=page, per_page=per_page)

    async def _refresh(
        self,
        tenant: Tenant,
        kind: DataKind,
        since: str | None = None,
        until: str | None = None,
    ) -> CopilotDataService:
        # Reject malformed dates before any upstream traffic
        normalize_day(since)
        normalize_day(until)

        await tenant.validate(self._client)
        if self._auto_save:
            await self._auto_register(tenant)

        service = self._factory.create(tenant, kind)
        if not await service.save():
            # Nothing new upstream; the stored history is still served
            log.info("refresh_found_no_data", tenant=tenant.key, kind=kind.value)
        return service

    async def _auto_register(self, tenant: Tenant) -> None:
        try:
            await self._registry.upsert(tenant)
        except PersistenceError as exc:
            log.warning("tenant_auto_save_failed", tenant=tenant.key, error=exc.message)
            msg = "The tenant data is not right, please double check the token"
            raise InvalidCredentialError(msg, context={"tenant": tenant.key}) from exc

    # ── Registry ─────────────────────────────────────────────────

    async def list_tenants(self) -> list[Tenant]:
        return await self._registry.list_active()

    async def register(self, tenant: Tenant) -> Tenant:
        """Validate upstream, then insert or update the tenant."""
        await tenant.validate(self._client)
        return await self._registry.upsert(tenant)

    async def deregister(self, tenant: Tenant) -> int:
        """Validate upstream, then deactivate the tenant (or its whole scope)."""
        await tenant.validate(self._client)
        return await self._registry.remove(
            tenant.scope_type.value, tenant.scope_name, tenant.team_slug,
        )
