"""Post-fetch enrichment with bounded fan-out.

Work is split into fixed-size batches and each batch is awaited in full
before the next one starts, so at most ``batch_size`` requests are in flight.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, TypeVar

from loguru import logger

from versiontracker.clients.http import probe_content_length
from versiontracker.sources.base import PROVIDER_ERRORS, describe_error, dig
from versiontracker.utils.parsing import format_file_size

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable, Sequence

    from versiontracker.models.release import DownloadAsset
    from versiontracker.sources.base import SourceSession

T = TypeVar("T")
R = TypeVar("R")


async def run_in_batches(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    *,
    batch_size: int,
) -> list[R]:
    """Run ``worker`` over ``items`` in sequential batches of concurrent calls, preserving order."""

    size = max(1, batch_size)
    results: list[R] = []
    for start in range(0, len(items), size):
        batch = items[start : start + size]
        results.extend(await asyncio.gather(*(worker(item) for item in batch)))
    return results


async def probe_sizes(
    session: SourceSession,
    assets: Iterable[DownloadAsset],
    *,
    batch_size: int | None = None,
) -> int:
    """Fill ``size_bytes``/``size`` from a HEAD probe of each distinct URL.

    Assets whose probe fails keep their size fields untouched. Returns the
    number of URLs that yielded a size.
    """

    by_url: dict[str, list[DownloadAsset]] = {}
    for asset in assets:
        by_url.setdefault(asset.url, []).append(asset)
    if not by_url:
        return 0

    settings = session.settings
    urls = list(by_url)
    logger.info("Probing sizes for {} files", len(urls))

    async def _probe(url: str) -> int | None:
        return await probe_content_length(session.client, url, timeout=settings.probe_timeout)

    sizes = await run_in_batches(urls, _probe, batch_size=batch_size or settings.probe_batch_size)
    resolved = 0
    for url, size_bytes in zip(urls, sizes, strict=True):
        if size_bytes is None:
            continue
        resolved += 1
        for asset in by_url[url]:
            asset.size_bytes = size_bytes
            asset.size = format_file_size(size_bytes)
    return resolved


async def resolve_commit_dates(
    session: SourceSession,
    owner: str,
    repo: str,
    shas: Sequence[str],
) -> dict[str, str | None]:
    """Resolve commit SHAs to committer dates; unresolvable SHAs map to None."""

    async def _lookup(sha: str) -> str | None:
        url = session.github_url(f"repos/{owner}/{repo}/commits/{sha}")
        try:
            payload = await session.get_json(url)
        except PROVIDER_ERRORS as exc:
            logger.debug("Commit date lookup failed for {}/{}@{}: {}", owner, repo, sha, describe_error(exc))
            return None
        date = dig(payload, "commit", "committer", "date")
        return date if isinstance(date, str) else None

    unique = list(dict.fromkeys(shas))
    dates = await run_in_batches(unique, _lookup, batch_size=session.settings.probe_batch_size)
    return dict(zip(unique, dates, strict=True))
