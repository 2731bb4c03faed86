"""Pydantic V2 request/response schemas for the Copilot Saver API.

Request and tenant bodies use the camelCase field names existing clients
send (``scopeType``, ``isActive``...). Copilot payloads are passed through
as GitHub returns them; the models here document the known fields and keep
any others.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from copilot_saver.saas.tenant import Tenant


# ── Tenants ───────────────────────────────────────────────────────

class TenantDeleteIn(BaseModel):
    """Request body for removing (deactivating) a tenant."""

    model_config = ConfigDict(populate_by_name=True)

    scope_type: str = Field(..., alias="scopeType")
    scope_name: str = Field(..., alias="scopeName")
    token: str
    team: str | None = None


class TenantIn(TenantDeleteIn):
    """Request body for registering or updating a tenant."""

    is_active: bool = Field(..., alias="isActive")

    @field_validator("is_active", mode="before")
    @classmethod
    def _strict_bool(cls, value: Any) -> bool:
        if not isinstance(value, bool):
            msg = "isActive should be a boolean"
            raise ValueError(msg)
        return value


class TenantOut(BaseModel):
    """A registered tenant. The token is redacted to its last characters."""

    model_config = ConfigDict(populate_by_name=True)

    scope_type: str = Field(..., alias="scopeType")
    scope_name: str = Field(..., alias="scopeName")
    team: str | None = None
    token: str
    is_active: bool = Field(..., alias="isActive")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")

    @classmethod
    def from_tenant(cls, tenant: Tenant) -> TenantOut:
        return cls(
            scope_type=tenant.scope_type.value,
            scope_name=tenant.scope_name,
            team=tenant.team_slug or None,
            token=tenant.redacted_token,
            is_active=tenant.is_active,
            created_at=tenant.created_at,
            updated_at=tenant.updated_at,
        )


class MessageOut(BaseModel):
    message: str


# ── Copilot: usage ───────────────────────────────────────────────

class BreakdownOut(BaseModel):
    """Per language/editor slice of a usage day."""

    model_config = ConfigDict(extra="allow")

    language: str | None = None
    editor: str | None = None
    suggestions_count: int | None = None
    acceptances_count: int | None = None
    lines_suggested: int | None = None
    lines_accepted: int | None = None
    active_users: int | None = None


class UsageOut(BaseModel):
    model_config = ConfigDict(extra="allow")

    day: str
    total_suggestions_count: int | None = None
    total_acceptances_count: int | None = None
    total_lines_suggested: int | None = None
    total_lines_accepted: int | None = None
    total_active_users: int | None = None
    total_chat_acceptances: int | None = None
    total_chat_turns: int | None = None
    total_active_chat_users: int | None = None
    breakdown: list[BreakdownOut] | None = None


# ── Copilot: metrics ─────────────────────────────────────────────

class MetricsOut(BaseModel):
    model_config = ConfigDict(extra="allow")

    date: str | None = None
    total_active_users: int | None = None
    total_engaged_users: int | None = None
    copilot_ide_code_completions: dict[str, Any] | None = None
    copilot_ide_chat: dict[str, Any] | None = None
    copilot_dotcom_chat: dict[str, Any] | None = None
    copilot_dotcom_pull_requests: dict[str, Any] | None = None


# ── Copilot: seats ───────────────────────────────────────────────

class SeatOut(BaseModel):
    model_config = ConfigDict(extra="allow")

    created_at: str | None = None
    updated_at: str | None = None
    pending_cancellation_date: str | None = None
    last_activity_at: str | None = None
    last_activity_editor: str | None = None
    plan_type: str | None = None
    assignee: dict[str, Any] | None = None
    assigning_team: dict[str, Any] | None = None


# ── Sync ─────────────────────────────────────────────────────────

class KindOutcomeOut(BaseModel):
    tenant: str
    kind: str
    status: str
    error: str | None = None


class SyncReportOut(BaseModel):
    started_at: datetime
    finished_at: datetime | None = None
    aborted: str | None = None
    succeeded: int = 0
    failed: int = 0
    outcomes: list[KindOutcomeOut] = Field(default_factory=list)


# ── Generic ───────────────────────────────────────────────────────

class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "0.1.0"
    environment: str = "dev"
    storage_backend: str = "file"
    sync_state: str = "idle"


class ErrorResponse(BaseModel):
    detail: str
