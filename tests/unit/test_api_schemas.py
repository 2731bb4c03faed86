"""Tests for Pydantic API schemas."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from copilot_saver.api.models.schemas import (
    HealthResponse,
    SeatOut,
    TenantDeleteIn,
    TenantIn,
    TenantOut,
    UsageOut,
)
from copilot_saver.core.types import ScopeType
from copilot_saver.saas.tenant import Tenant


class TestTenantIn:
    def test_camel_case_body(self) -> None:
        body = TenantIn.model_validate(
            {"scopeType": "organization", "scopeName": "acme", "token": "t", "isActive": False}
        )
        assert body.scope_type == "organization"
        assert body.scope_name == "acme"
        assert body.is_active is False
        assert body.team is None

    @pytest.mark.parametrize("value", ["true", 1, None])
    def test_is_active_must_be_bool(self, value: object) -> None:
        with pytest.raises(ValidationError, match="isActive should be a boolean"):
            TenantIn.model_validate(
                {"scopeType": "organization", "scopeName": "acme", "token": "t", "isActive": value}
            )

    def test_is_active_required(self) -> None:
        with pytest.raises(ValidationError):
            TenantIn.model_validate({"scopeType": "organization", "scopeName": "acme", "token": "t"})

    def test_delete_body_has_no_active_flag(self) -> None:
        body = TenantDeleteIn.model_validate(
            {"scopeType": "enterprise", "scopeName": "big", "token": "t", "team": "web"}
        )
        assert body.team == "web"


class TestTenantOut:
    def test_from_tenant_redacts_and_aliases(self) -> None:
        now = datetime(2024, 6, 1, tzinfo=timezone.utc)
        tenant = Tenant(
            ScopeType.ENTERPRISE, "big", "ghp_secret9876", team_slug="web",
            created_at=now, updated_at=now,
        )
        out = TenantOut.from_tenant(tenant).model_dump(by_alias=True)
        assert out["scopeType"] == "enterprise"
        assert out["team"] == "web"
        assert out["token"] == "********9876"
        assert out["isActive"] is True
        assert out["createdAt"] == now


class TestPassThroughModels:
    def test_usage_keeps_unknown_fields(self) -> None:
        usage = UsageOut.model_validate({"day": "2024-06-01", "new_field": 7})
        assert usage.model_dump()["new_field"] == 7

    def test_seat_all_optional(self) -> None:
        assert SeatOut.model_validate({}).assignee is None


class TestHealthResponse:
    def test_defaults(self) -> None:
        h = HealthResponse()
        assert h.status == "ok"
        assert h.sync_state == "idle"
