"""Fetch orchestrator: one sequential pass over the registry with per-software failure isolation."""

from __future__ import annotations

import asyncio
import json
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from loguru import logger
from prefect import flow

from versiontracker.clients.http import build_request_context, create_http_client
from versiontracker.models.release import (
    FetchState,
    RunReport,
    SoftwareEntry,
    SoftwareRunSummary,
    VersionsDataset,
)
from versiontracker.settings import Settings  # noqa: TC001 – needed at runtime by Prefect
from versiontracker.sources.base import SourceFetchError, SourceSession
from versiontracker.sources.merger import count_added, merge_versions
from versiontracker.sources.registry import TrackedSoftware, build_registry, find_software
from versiontracker.storage.dataset import load_dataset, save_dataset, write_text_atomic
from versiontracker.storage.summary import render_summary

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    import httpx

    from versiontracker.models.release import FetchResult


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def _entry_data(entry: SoftwareEntry | None) -> dict[str, Any]:
    return entry.model_dump(exclude_unset=True) if entry is not None else {}


def merged_entry(
    software: TrackedSoftware,
    existing: SoftwareEntry | None,
    result: FetchResult,
    *,
    fetched_at: datetime,
) -> SoftwareEntry:
    """Fold a successful fetch into the software's entry; clears any previous error."""

    existing_versions = existing.versions if existing is not None else []
    versions = merge_versions(existing_versions, result.versions)
    data = _entry_data(existing)
    data.pop("last_error", None)
    data.update(software.entry_metadata())
    data.update(result.metadata)
    data.update(
        name=software.name,
        category=software.category,
        versions=versions,
        latest=versions[0] if versions else result.latest,
        total_versions=len(versions),
        fetched_at=fetched_at,
    )
    return SoftwareEntry.model_validate(data)


def preserved_entry(
    software: TrackedSoftware,
    existing: SoftwareEntry | None,
    error: str,
    *,
    fetched_at: datetime,
) -> SoftwareEntry:
    """Keep the prior entry verbatim, annotated with the failure."""

    if existing is None:
        data: dict[str, Any] = {
            "name": software.name,
            "category": software.category,
            **software.entry_metadata(),
            "versions": [],
            "total_versions": 0,
        }
    else:
        data = _entry_data(existing)
    data.update(last_error=error, fetched_at=fetched_at)
    return SoftwareEntry.model_validate(data)


async def run_fetch(
    registry: Sequence[TrackedSoftware],
    persisted: VersionsDataset,
    session: SourceSession,
    *,
    delay: float = 0.2,
    clock: Callable[[], datetime] = _utcnow,
) -> tuple[VersionsDataset, RunReport]:
    """Fetch every registered software in order and merge it into a copy of ``persisted``.

    A provider failure is contained to its own software: prior versions are
    kept verbatim and the entry records ``last_error``. Entries that are not
    in the registry are carried over untouched.
    """

    started_at = clock()
    report = RunReport(run_id=started_at.strftime("%Y%m%dT%H%M%SZ"), started_at=started_at)
    dataset = VersionsDataset(
        last_updated=persisted.last_updated,
        incremental_mode=True,
        software={category: dict(entries) for category, entries in persisted.software.items()},
    )

    for index, software in enumerate(registry):
        summary = SoftwareRunSummary(name=software.name, category=software.category)
        report.software.append(summary)
        existing = persisted.get_entry(software.category, software.name)
        existing_versions = existing.versions if existing is not None else []

        summary.state = FetchState.FETCHING
        logger.info("Fetching {} ({} known versions)", software.name, len(existing_versions))
        try:
            result = await software.provider.fetch(session, {record.version for record in existing_versions})
        except SourceFetchError as exc:
            entry = preserved_entry(software, existing, exc.message, fetched_at=clock())
            summary.state = FetchState.PRESERVED_ON_ERROR
            summary.error = exc.message
            summary.total_versions = entry.total_versions
            logger.warning(
                "{} failed: {}; preserved {} existing versions", software.name, exc.message, entry.total_versions
            )
        else:
            entry = merged_entry(software, existing, result, fetched_at=clock())
            summary.state = FetchState.MERGED
            summary.added = count_added(existing_versions, entry.versions)
            summary.total_versions = entry.total_versions
            summary.stopped_early = result.stopped_early
            if summary.added:
                logger.info("{}: {} total ({} new)", software.name, entry.total_versions, summary.added)
            elif entry.total_versions:
                logger.info("{}: {} versions (no new)", software.name, entry.total_versions)
            else:
                logger.warning("{}: no data found", software.name)
        dataset.set_entry(software.category, software.name, entry)

        if delay > 0 and index < len(registry) - 1:
            await asyncio.sleep(delay)

    finished_at = clock()
    previous = persisted.last_updated
    dataset.last_updated = finished_at if previous is None else max(_as_utc(finished_at), _as_utc(previous))
    report.finished_at = finished_at
    report.rate_limited_percent = session.ctx.monitor.rate_limited_percent
    if session.ctx.monitor.should_warn:
        logger.warning("GitHub rate limit pressure: {:.1f}% limited responses", report.rate_limited_percent)
    return dataset, report


def write_run_report(settings: Settings, report: RunReport) -> None:
    reports_dir = settings.output_dir / "reports"
    reports_dir.mkdir(parents=True, exist_ok=True)
    payload = report.model_dump(mode="json") | {
        "merged": report.merged,
        "failed": report.failed,
        "added": report.added,
    }
    (reports_dir / "fetch_report.json").write_text(json.dumps(payload, indent=2, default=str))


async def fetch_and_persist(
    settings: Settings,
    *,
    only: list[str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> RunReport:
    """Load the dataset, fetch every (or the selected) software, then persist once."""

    registry = build_registry()
    if only:
        registry = find_software(registry, only)
        if not registry:
            raise ValueError(f"No tracked software matches {', '.join(only)}")

    persisted = load_dataset(settings.dataset_path)
    ctx = build_request_context(settings)
    async with await create_http_client(settings, transport=transport) as client:
        session = SourceSession(client=client, ctx=ctx, settings=settings)
        dataset, report = await run_fetch(registry, persisted, session, delay=settings.inter_software_delay)

    save_dataset(settings.dataset_path, dataset)
    write_text_atomic(settings.summary_path, render_summary(dataset, dataset_filename=settings.dataset_filename))
    write_run_report(settings, report)
    logger.info(
        "Fetch complete: {} merged, {} failed, {} new versions",
        report.merged,
        report.failed,
        report.added,
    )
    return report


@flow(name="versiontracker-fetch", timeout_seconds=7200)
async def fetch_flow(settings: Settings, only: list[str] | None = None) -> RunReport:
    """Prefect flow wrapper for one incremental fetch pass."""

    return await fetch_and_persist(settings, only=only)
