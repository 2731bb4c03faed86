"""FastAPI dependency injection — shared instances for routes."""

from __future__ import annotations

from fastapi import Depends, Header, Request

from config.settings import Settings
from copilot_saver.api.container import Container
from copilot_saver.core.exceptions import ScopeValidationError
from copilot_saver.data.facade import QueryFacade
from copilot_saver.data.scheduler import SyncJob

# ── Container ─────────────────────────────────────────────────────


def get_container(request: Request) -> Container:
    """The container built by ``create_app``."""
    return request.app.state.container  # type: ignore[no-any-return]


def get_app_settings(container: Container = Depends(get_container)) -> Settings:
    return container.settings


def get_facade(container: Container = Depends(get_container)) -> QueryFacade:
    return container.facade


def get_sync_job(container: Container = Depends(get_container)) -> SyncJob:
    return container.sync_job


# ── Credentials ───────────────────────────────────────────────────


async def get_bearer_token(
    authorization: str | None = Header(default=None),
) -> str:
    """Extract the GitHub token from ``Authorization: Bearer <token>``.

    The ``token <token>`` form GitHub itself accepts is honoured too.
    """
    raw = (authorization or "").strip()
    scheme, _, credential = raw.partition(" ")
    if scheme.lower() in ("bearer", "token") and credential.strip():
        return credential.strip()
    msg = "Missing or malformed authorization header, expected 'Bearer <token>'"
    raise ScopeValidationError(msg)
