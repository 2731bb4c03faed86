"""Health check endpoint — no auth required."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from copilot_saver import __version__
from copilot_saver.api.container import Container
from copilot_saver.api.deps import get_container
from copilot_saver.api.models.schemas import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(container: Container = Depends(get_container)) -> HealthResponse:
    return HealthResponse(
        status="ok",
        version=__version__,
        environment=container.settings.copilot_env,
        storage_backend=container.storage.name,
        sync_state=container.sync_job.state.value,
    )
