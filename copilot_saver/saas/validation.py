"""Request-side scope validation.

Turns raw (scope type, scope name, team, token) input from a path or a body
into a ``Tenant``, or raises ``ScopeValidationError`` with a message fit for
a 400 response.
"""

from __future__ import annotations

import re

from copilot_saver.core.constants import SCOPE_ALIASES
from copilot_saver.core.exceptions import ScopeValidationError
from copilot_saver.core.types import ScopeType
from copilot_saver.saas.tenant import Tenant

# GitHub logins/slugs: alphanumerics and single hyphens, no leading hyphen
_SCOPE_NAME_RE = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9._-]{0,98}[A-Za-z0-9_])?$")
_TEAM_SLUG_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,99}$")


def normalize_scope_type(value: str | None) -> ScopeType:
    """Map a scope-type spelling (``orgs``, ``enterprise``...) to ``ScopeType``."""
    canonical = SCOPE_ALIASES.get((value or "").strip().lower())
    if canonical is None:
        msg = f"Invalid scopeType '{value}', expected 'organization' or 'enterprise'"
        raise ScopeValidationError(msg, context={"scope_type": value})
    return ScopeType(canonical)


def validate_scope(
    scope_type: str | None,
    scope_name: str | None,
    token: str | None,
    team_slug: str | None = None,
    *,
    child_team_enabled: bool = True,
    is_active: bool = True,
) -> Tenant:
    """Validate request input and build the transient tenant it names."""
    scope = normalize_scope_type(scope_type)

    name = (scope_name or "").strip()
    if not name or not _SCOPE_NAME_RE.match(name):
        msg = f"Invalid scopeName '{scope_name}'"
        raise ScopeValidationError(msg, context={"scope_name": scope_name})

    team = (team_slug or "").strip()
    if team:
        if not child_team_enabled:
            msg = "Team scopes are disabled on this server"
            raise ScopeValidationError(msg, context={"team_slug": team})
        if not _TEAM_SLUG_RE.match(team):
            msg = f"Invalid team slug '{team_slug}'"
            raise ScopeValidationError(msg, context={"team_slug": team_slug})

    secret = (token or "").strip()
    if not secret:
        msg = "A GitHub token is required"
        raise ScopeValidationError(msg)

    return Tenant(
        scope_type=scope,
        scope_name=name,
        token=secret,
        team_slug=team,
        is_active=is_active,
    )
