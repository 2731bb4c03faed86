"""System-wide shared types — the single source of truth for all data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from copilot_saver.core.constants import MAX_QUERY_OFFSET


# ── Enums ────────────────────────────────────────────────────────

class ScopeType(str, Enum):
    ORGANIZATION = "organization"
    ENTERPRISE = "enterprise"


class DataKind(str, Enum):
    USAGE = "usage"
    SEATS = "seats"
    METRICS = "metrics"


# ── Snapshot Types ───────────────────────────────────────────────

@dataclass(frozen=True)
class SnapshotRecord:
    """One persisted upstream record.

    ``bucket`` is the overwrite key: the day for usage/metrics, the login for
    seats. ``sort_key`` drives descending-recency ordering: the day for
    usage/metrics, ``last_activity_at`` for seats ("" when never active).
    """

    bucket: str
    sort_key: str
    data: dict[str, Any]
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        if not self.bucket:
            msg = "SnapshotRecord bucket cannot be empty"
            raise ValueError(msg)

    def to_dict(self) -> dict[str, Any]:
        return {
            "bucket": self.bucket,
            "sort_key": self.sort_key,
            "data": self.data,
            "fetched_at": self.fetched_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> SnapshotRecord:
        fetched = raw.get("fetched_at")
        return cls(
            bucket=str(raw["bucket"]),
            sort_key=str(raw.get("sort_key") or ""),
            data=dict(raw["data"]),
            fetched_at=(
                datetime.fromisoformat(fetched)
                if isinstance(fetched, str)
                else datetime.now(timezone.utc)
            ),
        )


@dataclass(frozen=True)
class SnapshotQuery:
    """Filter + page window applied by a snapshot store.

    ``since``/``until`` bound the sort key as a half-open range [since, until).
    """

    since: str | None = None
    until: str | None = None
    page: int = 1
    per_page: int = 60

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page

    @property
    def is_empty(self) -> bool:
        """True when the window can never match anything."""
        if self.page < 1 or self.per_page < 1:
            return True
        if self.offset > MAX_QUERY_OFFSET:
            return True
        if self.since is not None and self.until is not None:
            return self.since >= self.until
        return False
