"""Storage capability interfaces — every backend must satisfy these protocols.

Backends do not inherit from these classes; the storage factory picks a
concrete implementation by configuration and callers depend only on the
protocol.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from copilot_saver.core.types import DataKind, SnapshotQuery, SnapshotRecord

if TYPE_CHECKING:
    from copilot_saver.saas.tenant import Tenant


@runtime_checkable
class TenantStorage(Protocol):
    """Durable registry of tenant credentials and scopes."""

    async def list_all(self) -> list[Tenant]:
        """Return every registered tenant, active or not."""
        ...

    async def list_active(self) -> list[Tenant]:
        """Return tenants with ``is_active`` set."""
        ...

    async def upsert(self, tenant: Tenant) -> Tenant:
        """Insert a new identity, or replace token/active flag of an existing one."""
        ...

    async def remove(
        self, scope_type: str, scope_name: str, team_slug: str = "",
    ) -> int:
        """Deactivate a team record, or a whole scope footprint when no team.

        Returns the number of records deactivated. Raises
        ``TenantNotFoundError`` when nothing active matches.
        """
        ...


@runtime_checkable
class SnapshotStorage(Protocol):
    """Per-tenant, per-kind snapshot store with atomic replace semantics."""

    async def replace_buckets(
        self, tenant_key: str, kind: DataKind, records: list[SnapshotRecord],
    ) -> int:
        """Overwrite the stored records sharing a bucket with ``records``."""
        ...

    async def replace_all(
        self, tenant_key: str, kind: DataKind, records: list[SnapshotRecord],
    ) -> int:
        """Replace the tenant's whole snapshot for ``kind`` with ``records``."""
        ...

    async def query(
        self, tenant_key: str, kind: DataKind, window: SnapshotQuery,
    ) -> list[SnapshotRecord]:
        """Return one page of records, most recent ``sort_key`` first."""
        ...
