"""System-wide constants. All magic numbers and strings live here."""

from __future__ import annotations

# ── Scope Types ──────────────────────────────────────────────────
SCOPE_ORGANIZATION = "organization"
SCOPE_ENTERPRISE = "enterprise"

# Accepted spellings in request paths/bodies -> canonical scope type
SCOPE_ALIASES: dict[str, str] = {
    "organization": SCOPE_ORGANIZATION,
    "organizations": SCOPE_ORGANIZATION,
    "org": SCOPE_ORGANIZATION,
    "orgs": SCOPE_ORGANIZATION,
    "enterprise": SCOPE_ENTERPRISE,
    "enterprises": SCOPE_ENTERPRISE,
    "ent": SCOPE_ENTERPRISE,
}

# ── Upstream ─────────────────────────────────────────────────────
GITHUB_ACCEPT_HEADER = "application/vnd.github+json"
UPSTREAM_SEATS_PAGE_SIZE = 100
UPSTREAM_METRICS_PAGE_SIZE = 28      # metrics API returns at most 28 days
UPSTREAM_MAX_PAGES = 50

# ── Query Defaults ───────────────────────────────────────────────
DEFAULT_PAGE = 1
DEFAULT_PER_PAGE = 60
MAX_PER_PAGE = 1000
MAX_QUERY_OFFSET = 2**31 - 1     # deeper pages are always empty

# ── Sync Job ─────────────────────────────────────────────────────
DEFAULT_SYNC_INTERVAL_HOURS = 12

# ── Redaction ────────────────────────────────────────────────────
REDACTED_VISIBLE_CHARS = 4
