"""Tenant registry endpoints — list, register, remove."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from config.settings import Settings
from copilot_saver.api.deps import get_app_settings, get_facade
from copilot_saver.api.models.schemas import MessageOut, TenantDeleteIn, TenantIn, TenantOut
from copilot_saver.core.logging import get_logger
from copilot_saver.data.facade import QueryFacade
from copilot_saver.saas.validation import validate_scope

log = get_logger(__name__)

router = APIRouter(prefix="/tenants", tags=["tenants"])


@router.get("", response_model=list[TenantOut])
async def list_tenants(
    facade: QueryFacade = Depends(get_facade),
) -> list[TenantOut]:
    """List active tenants. Tokens are redacted."""
    return [TenantOut.from_tenant(t) for t in await facade.list_tenants()]


@router.post("", response_model=MessageOut, status_code=status.HTTP_201_CREATED)
async def add_tenant(
    body: TenantIn,
    facade: QueryFacade = Depends(get_facade),
    settings: Settings = Depends(get_app_settings),
) -> MessageOut:
    """Register a tenant, or update the token/active flag of an existing one."""
    tenant = validate_scope(
        body.scope_type, body.scope_name, body.token, body.team,
        child_team_enabled=settings.child_team_enabled,
        is_active=body.is_active,
    )
    stored = await facade.register(tenant)
    log.info("tenant_registered", tenant=stored.key, is_active=stored.is_active)
    return MessageOut(message=f"Tenant {stored.scope_name} added successfully")


@router.post("/delete", response_model=MessageOut, status_code=status.HTTP_201_CREATED)
async def remove_tenant(
    body: TenantDeleteIn,
    facade: QueryFacade = Depends(get_facade),
    settings: Settings = Depends(get_app_settings),
) -> MessageOut:
    """Deactivate a tenant; without a team, the whole scope is deactivated."""
    tenant = validate_scope(
        body.scope_type, body.scope_name, body.token, body.team,
        child_team_enabled=settings.child_team_enabled,
    )
    count = await facade.deregister(tenant)
    log.info("tenant_removed", tenant=tenant.key, records=count)

    if tenant.team_slug:
        message = (
            f"The team {tenant.team_slug} of Tenant {tenant.scope_name} "
            "was removed successfully"
        )
    else:
        message = f"Tenant {tenant.scope_name} was removed successfully"
    return MessageOut(message=message)
