"""Custom exception hierarchy for Copilot Saver."""

from __future__ import annotations

from typing import Any


class CopilotSaverError(Exception):
    """Base exception for all Copilot Saver errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = context or {}


# ── Tenant Layer ─────────────────────────────────────────────────

class ScopeValidationError(CopilotSaverError):
    """Scope type, scope name, team slug, or token failed input validation."""


class InvalidCredentialError(CopilotSaverError):
    """Tenant failed the upstream liveness probe, or could not be registered."""


class TenantNotFoundError(CopilotSaverError):
    """Removal target is not registered (or already inactive)."""


# ── Upstream Layer ───────────────────────────────────────────────

class UpstreamError(CopilotSaverError):
    """GitHub API call failed: auth, not-found, network, timeout, or bad payload."""

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, context)
        self.status_code = status_code


# ── Storage Layer ────────────────────────────────────────────────

class PersistenceError(CopilotSaverError):
    """Storage backend read or write failed."""
