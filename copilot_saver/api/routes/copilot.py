"""Copilot data endpoints — usage, metrics, and seats per scope.

Each path exists at scope level and team level::

    /api/{scope_type}/{scope_name}/copilot/...
    /api/{scope_type}/{scope_name}/team/{team_slug}/copilot/...

Every request validates the token upstream, refreshes the stored snapshot,
then serves a page of it.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from config.settings import Settings
from copilot_saver.api.deps import get_app_settings, get_bearer_token, get_facade
from copilot_saver.api.models.schemas import MetricsOut, SeatOut, UsageOut
from copilot_saver.core.constants import DEFAULT_PAGE, DEFAULT_PER_PAGE, MAX_PER_PAGE
from copilot_saver.data.facade import QueryFacade
from copilot_saver.saas.validation import validate_scope

router = APIRouter(tags=["copilot"])

_SCOPE = "/{scope_type}/{scope_name}"
_TEAM = "/{scope_type}/{scope_name}/team/{team_slug}"


@router.get(_SCOPE + "/copilot/usage", response_model=list[UsageOut])
@router.get(_TEAM + "/copilot/usage", response_model=list[UsageOut])
async def get_usage(
    scope_type: str,
    scope_name: str,
    team_slug: str | None = None,
    since: str | None = None,
    until: str | None = None,
    page: int = DEFAULT_PAGE,
    per_page: int = DEFAULT_PER_PAGE,
    token: str = Depends(get_bearer_token),
    facade: QueryFacade = Depends(get_facade),
    settings: Settings = Depends(get_app_settings),
) -> list[dict[str, Any]]:
    """Daily Copilot usage summaries, most recent day first."""
    tenant = validate_scope(
        scope_type, scope_name, token, team_slug,
        child_team_enabled=settings.child_team_enabled,
    )
    return await facade.get_usage(
        tenant, since, until, page=page, per_page=min(per_page, MAX_PER_PAGE),
    )


@router.get(_SCOPE + "/copilot/metrics", response_model=list[MetricsOut])
@router.get(_TEAM + "/copilot/metrics", response_model=list[MetricsOut])
async def get_metrics(
    scope_type: str,
    scope_name: str,
    team_slug: str | None = None,
    since: str | None = None,
    until: str | None = None,
    page: int = DEFAULT_PAGE,
    per_page: int = DEFAULT_PER_PAGE,
    token: str = Depends(get_bearer_token),
    facade: QueryFacade = Depends(get_facade),
    settings: Settings = Depends(get_app_settings),
) -> list[dict[str, Any]]:
    """Daily Copilot metrics, most recent date first."""
    tenant = validate_scope(
        scope_type, scope_name, token, team_slug,
        child_team_enabled=settings.child_team_enabled,
    )
    return await facade.get_metrics(
        tenant, since, until, page=page, per_page=min(per_page, MAX_PER_PAGE),
    )


@router.get(_SCOPE + "/copilot/billing/seats", response_model=list[SeatOut])
@router.get(_TEAM + "/copilot/billing/seats", response_model=list[SeatOut])
async def get_seats(
    scope_type: str,
    scope_name: str,
    team_slug: str | None = None,
    page: int = DEFAULT_PAGE,
    per_page: int = DEFAULT_PER_PAGE,
    token: str = Depends(get_bearer_token),
    facade: QueryFacade = Depends(get_facade),
    settings: Settings = Depends(get_app_settings),
) -> list[dict[str, Any]]:
    """Current seat assignments, most recently active first."""
    tenant = validate_scope(
        scope_type, scope_name, token, team_slug,
        child_team_enabled=settings.child_team_enabled,
    )
    return await facade.get_seats(
        tenant, page=page, per_page=min(per_page, MAX_PER_PAGE),
    )
