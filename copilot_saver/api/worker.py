"""Standalone sync worker — runs the periodic sync without the HTTP API.

Usage:
    python -m copilot_saver.api.worker          # loop every SYNC_INTERVAL_HOURS
    python -m copilot_saver.api.worker --once   # one pass, then exit

Use it when the API runs with SYNC_ENABLED=false (e.g. several API replicas
sharing one database) so that exactly one process syncs.
"""

from __future__ import annotations

import argparse
import asyncio

from config.settings import get_settings
from copilot_saver.api.container import build_container
from copilot_saver.core.logging import get_logger, setup_logging

log = get_logger(__name__)


async def run_once() -> int:
    """Run a single sync pass. Returns the number of failed (tenant, kind) saves."""
    settings = get_settings()
    container = build_container(settings)
    await container.start(with_scheduler=False)
    try:
        report = await container.sync_job.run()
    finally:
        await container.close()

    if report is None:
        return 0
    if report.aborted:
        return 1
    return report.failed


async def worker_loop() -> None:
    """Main worker loop — sync every interval until cancelled."""
    settings = get_settings()
    container = build_container(settings)
    await container.start(with_scheduler=True)

    log.info(
        "worker_started",
        interval_hours=settings.sync_interval_hours,
        storage_backend=container.storage.name,
    )

    try:
        # The scheduler owns the loop; park here until cancelled
        await asyncio.Event().wait()
    except asyncio.CancelledError:
        log.info("worker_cancelled")
    finally:
        await container.close()
        log.info("worker_stopped")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Copilot Saver sync worker")
    parser.add_argument("--once", action="store_true", help="run one sync pass and exit")
    args = parser.parse_args(argv)

    settings = get_settings()
    setup_logging(settings.log_level, json=settings.log_json)

    if args.once:
        failed = asyncio.run(run_once())
        return 1 if failed else 0

    try:
        asyncio.run(worker_loop())
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
