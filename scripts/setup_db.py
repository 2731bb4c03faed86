#!/usr/bin/env python3
"""Initialize the Copilot Saver database schema (STORAGE_BACKEND=sql)."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

# Ensure project root is on the path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from config.settings import get_settings
from copilot_saver.core.logging import setup_logging, get_logger
from copilot_saver.data.db import close_engine, create_engine, init_schema

log = get_logger(__name__)


async def main() -> None:
    settings = get_settings()
    setup_logging(settings.log_level, json=settings.log_json)

    if settings.storage_backend != "sql":
        log.info("schema_initialization_skipped", storage_backend=settings.storage_backend)
        return

    settings.data_dir.mkdir(parents=True, exist_ok=True)
    engine = create_engine(settings.database_url.get_secret_value())
    log.info("starting_schema_initialization")

    try:
        await init_schema(engine)
        log.info("schema_initialization_complete")
    except Exception as exc:
        log.error("schema_initialization_failed", error=str(exc))
        raise
    finally:
        await close_engine(engine)


if __name__ == "__main__":
    asyncio.run(main())
