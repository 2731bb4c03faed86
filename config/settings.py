"""Copilot Saver global settings — loaded from environment variables via .env file."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """All configuration flows through this class. Never read env vars directly."""

    model_config = SettingsConfigDict(
        env_file=PROJECT_ROOT / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Environment ──────────────────────────────────────────────
    copilot_env: Literal["dev", "prod"] = "dev"
    log_level: str = "INFO"
    log_json: bool = False

    # ── API surface ──────────────────────────────────────────────
    server_url: str = "http://localhost:3000"
    cors_origins: list[str] = ["*"]

    # ── Upstream (GitHub) ────────────────────────────────────────
    github_api_url: str = "https://api.github.com"
    github_api_version: str = "2022-11-28"
    upstream_timeout_seconds: float = 30.0

    # ── Storage ──────────────────────────────────────────────────
    storage_backend: Literal["file", "sql"] = "file"
    data_dir: Path = PROJECT_ROOT / "data"
    database_url: SecretStr = SecretStr("")

    # ── Tenant behaviour ─────────────────────────────────────────
    tenant_auto_save: bool = True
    child_team_enabled: bool = True

    # ── Sync job ─────────────────────────────────────────────────
    sync_enabled: bool = True
    sync_interval_hours: float = 12
    sync_on_startup: bool = False
    sync_include_metrics: bool = True
    sync_concurrency: int = 1

    @model_validator(mode="after")
    def _check_values(self) -> "Settings":
        """Reject configurations the sync job or storage layer cannot run with."""
        if self.sync_interval_hours <= 0:
            msg = "SYNC_INTERVAL_HOURS must be greater than zero"
            raise ValueError(msg)
        if self.sync_concurrency < 1:
            msg = "SYNC_CONCURRENCY must be at least 1"
            raise ValueError(msg)
        if self.storage_backend == "sql" and not self.database_url.get_secret_value():
            if self.copilot_env == "prod":
                msg = "DATABASE_URL must be set when STORAGE_BACKEND=sql in production"
                raise ValueError(msg)
            self.database_url = SecretStr(
                f"sqlite+aiosqlite:///{self.data_dir / 'copilot.db'}"
            )
        return self


_settings_instance: Settings | None = None


def get_settings() -> Settings:
    """Singleton settings loader — reads .env once, reuses thereafter."""
    global _settings_instance  # noqa: PLW0603
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
