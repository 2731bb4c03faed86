"""GitHub Copilot REST client — usage, metrics, and seat endpoints via httpx.

Endpoint shapes by scope::

    organization          /orgs/{org}/copilot/...
    organization + team   /orgs/{org}/team/{team_slug}/copilot/...
    enterprise            /enterprises/{enterprise}/copilot/...
    enterprise + team     /enterprises/{enterprise}/team/{team_slug}/copilot/...

Seats have no team-scoped endpoint; team tenants get the scope roster
filtered by ``assigning_team.slug``.

Every failure (non-2xx, network error, timeout, malformed JSON) surfaces as
``UpstreamError``.
"""

from __future__ import annotations

from typing import Any

import httpx

from config.settings import Settings, get_settings
from copilot_saver.core.constants import (
    GITHUB_ACCEPT_HEADER,
    UPSTREAM_MAX_PAGES,
    UPSTREAM_METRICS_PAGE_SIZE,
    UPSTREAM_SEATS_PAGE_SIZE,
)
from copilot_saver.core.exceptions import UpstreamError
from copilot_saver.core.logging import get_logger
from copilot_saver.core.types import ScopeType

log = get_logger(__name__)


def scope_path(scope_type: ScopeType | str, scope_name: str, team_slug: str = "") -> str:
    """Build the REST path prefix for a scope, optionally narrowed to a team."""
    scope = ScopeType(scope_type)
    root = "orgs" if scope is ScopeType.ORGANIZATION else "enterprises"
    path = f"/{root}/{scope_name}"
    if team_slug:
        path += f"/team/{team_slug}"
    return path


class GitHubCopilotClient:
    """Async GitHub API client shared by every tenant.

    One ``httpx.AsyncClient`` (one connection pool) is reused across calls;
    the per-tenant token travels in each request's Authorization header.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._settings.github_api_url,
                timeout=self._settings.upstream_timeout_seconds,
                transport=self._transport,
                headers={
                    "Accept": GITHUB_ACCEPT_HEADER,
                    "X-GitHub-Api-Version": self._settings.github_api_version,
                },
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    # ── Transport ────────────────────────────────────────────────

    async def _get_json(
        self, path: str, token: str, params: dict[str, Any] | None = None,
    ) -> Any:
        client = await self._get_client()
        try:
            resp = await client.get(
                path,
                params=params,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.TimeoutException as exc:
            log.warning("github_request_timeout", path=path)
            msg = f"GitHub request timed out: {path}"
            raise UpstreamError(msg, context={"path": path}) from exc
        except httpx.HTTPError as exc:
            log.warning("github_request_failed", path=path, error=str(exc))
            msg = f"GitHub request failed: {exc}"
            raise UpstreamError(msg, context={"path": path}) from exc

        if resp.status_code >= 400:
            detail = _error_message(resp)
            log.warning(
                "github_error_response",
                path=path,
                status_code=resp.status_code,
                detail=detail,
            )
            raise UpstreamError(
                f"GitHub returned {resp.status_code} for {path}: {detail}",
                context={"path": path},
                status_code=resp.status_code,
            )

        try:
            return resp.json()
        except ValueError as exc:
            msg = f"GitHub returned malformed JSON for {path}"
            raise UpstreamError(
                msg, context={"path": path}, status_code=resp.status_code,
            ) from exc

    # ── Probe ────────────────────────────────────────────────────

    async def probe(self, scope_type: ScopeType | str, scope_name: str, token: str) -> None:
        """Read-only liveness check of a scope-level token."""
        await self._get_json(
            f"{scope_path(scope_type, scope_name)}/copilot/usage",
            token,
            params={"per_page": 1},
        )

    # ── Data ─────────────────────────────────────────────────────

    async def fetch_usage(
        self,
        scope_type: ScopeType | str,
        scope_name: str,
        token: str,
        team_slug: str = "",
    ) -> list[dict[str, Any]]:
        """Fetch daily usage summaries (up to 28 days, keyed by ``day``)."""
        path = f"{scope_path(scope_type, scope_name, team_slug)}/copilot/usage"
        data = await self._get_json(path, token)
        records = _expect_list(data, path)
        log.info("github_usage_fetched", path=path, days=len(records))
        return records

    async def fetch_metrics(
        self,
        scope_type: ScopeType | str,
        scope_name: str,
        token: str,
        team_slug: str = "",
    ) -> list[dict[str, Any]]:
        """Fetch daily metrics (keyed by ``date``), following upstream pages."""
        path = f"{scope_path(scope_type, scope_name, team_slug)}/copilot/metrics"
        params: dict[str, Any] = {"per_page": UPSTREAM_METRICS_PAGE_SIZE}

        records: list[dict[str, Any]] = []
        for page in range(1, UPSTREAM_MAX_PAGES + 1):
            params["page"] = page
            batch = _expect_list(await self._get_json(path, token, params), path)
            records.extend(batch)
            if len(batch) < UPSTREAM_METRICS_PAGE_SIZE:
                break

        log.info("github_metrics_fetched", path=path, days=len(records))
        return records

    async def fetch_seats(
        self,
        scope_type: ScopeType | str,
        scope_name: str,
        token: str,
        team_slug: str = "",
    ) -> list[dict[str, Any]]:
        """Fetch the full seat roster, filtered to ``team_slug`` when given."""
        path = f"{scope_path(scope_type, scope_name)}/copilot/billing/seats"
        seats: list[dict[str, Any]] = []
        total: int | None = None

        for page in range(1, UPSTREAM_MAX_PAGES + 1):
            data = await self._get_json(
                path, token, params={"page": page, "per_page": UPSTREAM_SEATS_PAGE_SIZE},
            )
            if not isinstance(data, dict):
                msg = f"GitHub returned an unexpected seats payload for {path}"
                raise UpstreamError(msg, context={"path": path})

            total = int(data.get("total_seats") or 0)
            batch = data.get("seats") or []
            seats.extend(s for s in batch if isinstance(s, dict))
            if not batch or len(seats) >= total:
                break

        if team_slug:
            seats = [s for s in seats if _assigning_team_slug(s) == team_slug]

        log.info(
            "github_seats_fetched",
            path=path,
            team=team_slug or None,
            total_seats=total,
            seats=len(seats),
        )
        return seats


def _expect_list(data: Any, path: str) -> list[dict[str, Any]]:
    if not isinstance(data, list):
        msg = f"GitHub returned an unexpected payload for {path}"
        raise UpstreamError(msg, context={"path": path})
    return [item for item in data if isinstance(item, dict)]


def _assigning_team_slug(seat: dict[str, Any]) -> str:
    team = seat.get("assigning_team")
    if isinstance(team, dict):
        return str(team.get("slug") or "")
    return ""


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200]
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return resp.reason_phrase
