"""Relational schema and async engine helpers (PostgreSQL in production, SQLite for dev/tests)."""

from __future__ import annotations

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from copilot_saver.core.logging import get_logger

log = get_logger(__name__)

metadata = MetaData()

_JSON = JSON().with_variant(JSONB(), "postgresql")

# ── Tables ───────────────────────────────────────────────────────

tenants = Table(
    "tenants",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("scope_type", String(32), nullable=False),
    Column("scope_name", String(255), nullable=False),
    Column("team_slug", String(255), nullable=False, default=""),
    Column("token", String(512), nullable=False),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    UniqueConstraint("scope_type", "scope_name", "team_slug", name="uq_tenant_identity"),
)

copilot_snapshots = Table(
    "copilot_snapshots",
    metadata,
    Column("tenant_key", String(600), primary_key=True),
    Column("kind", String(16), primary_key=True),
    Column("bucket", String(255), primary_key=True),
    Column("sort_key", String(64), nullable=False, index=True),
    Column("data", _JSON, nullable=False),
    Column("fetched_at", DateTime(timezone=True), nullable=False),
)


# ── Engine ───────────────────────────────────────────────────────

def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine; pool sizing only applies to server databases."""
    kwargs: dict[str, object] = {"echo": echo}
    if not database_url.startswith("sqlite"):
        kwargs.update(pool_size=10, max_overflow=20, pool_pre_ping=True)

    engine = create_async_engine(database_url, **kwargs)
    log.info("database_engine_created", host=database_url.split("@")[-1].split("?")[0])
    return engine


async def init_schema(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    log.info("schema_initialized")


async def close_engine(engine: AsyncEngine) -> None:
    """Dispose the database engine."""
    await engine.dispose()
    log.info("database_engine_closed")
