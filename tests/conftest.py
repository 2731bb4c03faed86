"""Pytest configuration, compatibility helpers, and shared fixtures.

This project includes async tests marked with ``@pytest.mark.asyncio``.
Some environments run unit tests without ``pytest-asyncio`` installed, which
would otherwise make those tests fail at collection/runtime.

GitHub is never contacted: ``FakeGitHub`` serves the Copilot endpoints through
``httpx.MockTransport``.
"""

from __future__ import annotations

import asyncio
import inspect
from pathlib import Path
from typing import Any

import httpx
import pytest
from pydantic import SecretStr

from config.settings import Settings
from copilot_saver.data.github_client import GitHubCopilotClient
from tests.fakes import FakeGitHub


def pytest_configure(config: pytest.Config) -> None:
    """Register local markers used in the suite."""
    config.addinivalue_line("markers", "asyncio: mark test as asyncio-compatible")


def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    """Run ``@pytest.mark.asyncio`` tests without external plugins.

    If pytest-asyncio (or another async plugin) is installed, this hook may be
    bypassed by that plugin depending on hook ordering. In plugin-less
    environments, this fallback executes coroutine tests via ``asyncio.run``.
    """
    if pyfuncitem.get_closest_marker("asyncio") is None:
        return None

    test_func = pyfuncitem.obj
    if not inspect.iscoroutinefunction(test_func):
        return None

    kwargs: dict[str, Any] = {
        arg: pyfuncitem.funcargs[arg]
        for arg in pyfuncitem._fixtureinfo.argnames
    }
    loop = asyncio.new_event_loop()
    try:
        asyncio.set_event_loop(loop)
        loop.run_until_complete(test_func(**kwargs))
    finally:
        loop.close()
        # Keep a default loop available for sync tests that call
        # ``asyncio.get_event_loop()`` directly.
        asyncio.set_event_loop(asyncio.new_event_loop())
    return True


# ── Fixtures ─────────────────────────────────────────────────────


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings isolated from the developer's .env and data directory."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        data_dir=tmp_path / "data",
        github_api_url="https://api.github.test",
        sync_enabled=False,
        log_level="WARNING",
    )


@pytest.fixture
def sql_settings(settings: Settings) -> Settings:
    """Same as ``settings`` but on the SQL backend (SQLite via aiosqlite)."""
    url = f"sqlite+aiosqlite:///{settings.data_dir / 'copilot.db'}"
    return settings.model_copy(
        update={"storage_backend": "sql", "database_url": SecretStr(url)},
    )


@pytest.fixture
def github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def transport(github: FakeGitHub) -> httpx.MockTransport:
    return httpx.MockTransport(github.handler)


@pytest.fixture
def gh_client(settings: Settings, transport: httpx.MockTransport) -> GitHubCopilotClient:
    return GitHubCopilotClient(settings, transport=transport)
