"""Top-level pipeline orchestrator."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from filelock import FileLock
from loguru import logger
from prefect import flow

from versiontracker.pipeline.fetch_flow import fetch_and_persist
from versiontracker.pipeline.static_api import build_static_api
from versiontracker.settings import Settings  # noqa: TC001 – needed at runtime by Prefect

if TYPE_CHECKING:
    import httpx


async def run_pipeline(
    settings: Settings,
    *,
    only: list[str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    lock_timeout: float = 10,
) -> dict[str, Any]:
    """Fetch, persist and republish the static API while holding the pipeline lock."""

    lock_path = settings.output_dir / ".pipeline.lock"
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    lock = FileLock(str(lock_path), timeout=lock_timeout)

    # Acquire lock without blocking the async event loop
    await asyncio.to_thread(lock.acquire)
    try:
        logger.info("Pipeline lock acquired")
        report = await fetch_and_persist(settings, only=only, transport=transport)
        api = build_static_api(settings.dataset_path, settings.api_dir, minify=settings.minify_json)
    finally:
        lock.release()

    return {
        "run_id": report.run_id,
        "merged": report.merged,
        "failed": report.failed,
        "added": report.added,
        "api": api,
    }


@flow(name="versiontracker-pipeline", log_prints=True, retries=1, retry_delay_seconds=300)
async def versiontracker_pipeline(settings: Settings, only: list[str] | None = None) -> dict[str, Any]:
    """Run the incremental fetch, then rebuild the static API tree."""

    return await run_pipeline(settings, only=only)
