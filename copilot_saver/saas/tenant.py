"""Tenant value object — one GitHub scope (org/enterprise, optionally a team) plus its token.

Each tenant has:
- An identity triple (scope_type, scope_name, team_slug); the token is not part of it
- A canonical ``key`` string that owns its persisted snapshots
- A liveness probe against the GitHub API
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from copilot_saver.core.constants import REDACTED_VISIBLE_CHARS
from copilot_saver.core.exceptions import InvalidCredentialError, UpstreamError
from copilot_saver.core.logging import get_logger
from copilot_saver.core.types import ScopeType

if TYPE_CHECKING:
    from copilot_saver.data.github_client import GitHubCopilotClient

log = get_logger(__name__)

TenantIdentity = tuple[str, str, str]


@dataclass
class Tenant:
    """A tenant (organization or enterprise scope, optionally a sub-team)."""

    scope_type: ScopeType
    scope_name: str
    token: str
    team_slug: str = ""
    is_active: bool = True
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        self.scope_type = ScopeType(self.scope_type)
        self.team_slug = self.team_slug or ""
        if not self.scope_name:
            msg = "scope_name cannot be empty"
            raise ValueError(msg)

    @property
    def identity(self) -> TenantIdentity:
        return (self.scope_type.value, self.scope_name, self.team_slug)

    @property
    def key(self) -> str:
        """Canonical identity string, e.g. ``organization/acme/team/web``."""
        base = f"{self.scope_type.value}/{self.scope_name}"
        return f"{base}/team/{self.team_slug}" if self.team_slug else base

    @property
    def redacted_token(self) -> str:
        if len(self.token) <= REDACTED_VISIBLE_CHARS:
            return "*" * len(self.token)
        return "*" * 8 + self.token[-REDACTED_VISIBLE_CHARS:]

    def with_updates(self, **changes: Any) -> Tenant:
        """Return a copy with ``changes`` applied and ``updated_at`` bumped."""
        changes.setdefault("updated_at", datetime.now(timezone.utc))
        return replace(self, **changes)

    async def validate(self, client: GitHubCopilotClient) -> None:
        """Probe GitHub with this tenant's scope and token.

        Any upstream failure (bad token, unknown scope, network, timeout)
        raises ``InvalidCredentialError``; the probe never mutates upstream.
        """
        try:
            await client.probe(self.scope_type, self.scope_name, self.token)
        except UpstreamError as exc:
            log.warning(
                "tenant_validation_failed",
                tenant=self.key,
                status_code=exc.status_code,
                error=exc.message,
            )
            msg = (
                "Invalid tenant information: scopeType, scopeName, "
                "or token is incorrect"
            )
            raise InvalidCredentialError(
                msg, context={"tenant": self.key, "upstream": exc.message},
            ) from exc
        log.debug("tenant_validated", tenant=self.key)

    def to_dict(self) -> dict[str, Any]:
        return {
            "scope_type": self.scope_type.value,
            "scope_name": self.scope_name,
            "token": self.token,
            "team_slug": self.team_slug,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Tenant:
        now = datetime.now(timezone.utc)
        created = raw.get("created_at")
        updated = raw.get("updated_at")
        return cls(
            scope_type=ScopeType(raw["scope_type"]),
            scope_name=raw["scope_name"],
            token=raw["token"],
            team_slug=raw.get("team_slug") or "",
            is_active=bool(raw.get("is_active", True)),
            created_at=datetime.fromisoformat(created) if created else now,
            updated_at=datetime.fromisoformat(updated) if updated else now,
        )
