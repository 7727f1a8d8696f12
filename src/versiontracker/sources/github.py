"""GitHub release-list and tag-list provider strategies."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any

from loguru import logger

from versiontracker.extraction.assets import classify_downloads, extract_assets, total_download_count
from versiontracker.models.release import FetchResult, ReleaseRecord, SourceDownload
from versiontracker.sources.base import PageScan, SourceProvider, SourceSession, dig, paginate_new_items
from versiontracker.sources.enrich import probe_sizes, resolve_commit_dates
from versiontracker.utils.versions import DEFAULT_RULE, VersionRule

if TYPE_CHECKING:
    from collections.abc import Callable

    from versiontracker.models.release import DownloadAsset, Platform


def assets_for_platforms(records: list[ReleaseRecord], platforms: tuple[Platform, ...]) -> list[DownloadAsset]:
    """Collect the download assets of the given platform buckets across records."""

    assets: list[DownloadAsset] = []
    for record in records:
        for platform in platforms:
            assets.extend((record.downloads or {}).get(platform, []))
    return assets


class _GitHubListingProvider(SourceProvider):
    """Shared pagination and enrichment for GitHub listing endpoints."""

    endpoint = ""

    def __init__(
        self,
        owner: str,
        repo: str,
        *,
        rule: VersionRule = DEFAULT_RULE,
        downloads: Callable[[str], dict[Platform, list[DownloadAsset]]] | None = None,
        probe_platforms: tuple[Platform, ...] = (),
        release_fields: dict[str, Any] | None = None,
    ) -> None:
        self.owner = owner
        self.repo = repo
        self.rule = rule
        self.downloads = downloads
        self.probe_platforms = probe_platforms
        self.release_fields = release_fields or {}

    @property
    def label(self) -> str:
        return f"github:{self.owner}/{self.repo}/{self.endpoint}"

    @abstractmethod
    def select(self, raw: Any) -> str | None:
        """Version identity for a listing item, or None to skip it."""

    @abstractmethod
    def to_record(self, version: str, raw: dict[str, Any]) -> ReleaseRecord:
        """Build the record for a selected listing item."""

    async def scan(self, session: SourceSession, existing: set[str]) -> PageScan:
        settings = session.settings
        page_size = settings.page_size
        base = session.github_url(f"repos/{self.owner}/{self.repo}/{self.endpoint}")

        async def _fetch_page(page: int) -> list[Any]:
            return await session.get_json_list(f"{base}?per_page={page_size}&page={page}")

        logger.info("{}: {} existing versions", self.label, len(existing))
        scan = await paginate_new_items(
            _fetch_page,
            self.select,
            existing,
            page_size=page_size,
            max_consecutive_known=settings.max_consecutive_known,
            page_delay=settings.page_delay,
        )
        logger.info("{}: {} new versions over {} pages", self.label, len(scan.items), scan.pages)
        return scan

    async def apply_vendor_downloads(self, session: SourceSession, records: list[ReleaseRecord]) -> None:
        if self.downloads is not None:
            for record in records:
                record.downloads = self.downloads(record.version) or None
        if self.probe_platforms and session.settings.probe_sizes:
            await probe_sizes(session, assets_for_platforms(records, self.probe_platforms))

    async def collect(self, session: SourceSession, existing: set[str]) -> FetchResult:
        scan = await self.scan(session, existing)
        records = [self.to_record(version, raw) for version, raw in scan.items]
        await self.apply_vendor_downloads(session, records)
        return FetchResult.from_versions(records, stopped_early=scan.stopped_early)


class GitHubReleasesProvider(_GitHubListingProvider):
    """Release-list strategy: pages through ``/releases``, skipping pre-releases unless included."""

    endpoint = "releases"

    def __init__(self, owner: str, repo: str, *, include_prerelease: bool = False, **kwargs: Any) -> None:
        super().__init__(owner, repo, **kwargs)
        self.include_prerelease = include_prerelease

    def select(self, raw: Any) -> str | None:
        if not isinstance(raw, dict):
            return None
        if raw.get("prerelease") and not self.include_prerelease:
            return None
        return self.rule.apply(str(raw.get("tag_name") or ""))

    def to_record(self, version: str, raw: dict[str, Any]) -> ReleaseRecord:
        assets = extract_assets(raw.get("assets"))
        return ReleaseRecord(
            version=version,
            tag=raw["tag_name"],
            published_at=raw.get("published_at"),
            prerelease=bool(raw.get("prerelease")),
            release_url=raw.get("html_url"),
            downloads=classify_downloads(assets),
            total_downloads=total_download_count(assets),
            **self.release_fields,
        )


class GitHubTagsProvider(_GitHubListingProvider):
    """Tag-list strategy: pages through ``/tags``; tags carry no metadata beyond the commit.

    With ``fetch_dates`` the publish timestamp is resolved from each new tag's
    commit, in bounded batches.
    """

    endpoint = "tags"

    def __init__(self, owner: str, repo: str, *, fetch_dates: bool = True, **kwargs: Any) -> None:
        super().__init__(owner, repo, **kwargs)
        self.fetch_dates = fetch_dates

    def select(self, raw: Any) -> str | None:
        if not isinstance(raw, dict):
            return None
        return self.rule.apply(str(raw.get("name") or ""))

    def to_record(self, version: str, raw: dict[str, Any]) -> ReleaseRecord:
        tag = raw["name"]
        base = f"https://github.com/{self.owner}/{self.repo}"
        return ReleaseRecord(
            version=version,
            tag=tag,
            published_at=None,
            release_url=f"{base}/releases/tag/{tag}",
            source_download=SourceDownload(
                tarball=f"{base}/archive/refs/tags/{tag}.tar.gz",
                zipball=f"{base}/archive/refs/tags/{tag}.zip",
            ),
            **self.release_fields,
        )

    async def collect(self, session: SourceSession, existing: set[str]) -> FetchResult:
        scan = await self.scan(session, existing)
        records = [self.to_record(version, raw) for version, raw in scan.items]
        if self.fetch_dates and session.settings.fetch_tag_dates:
            shas = {version: dig(raw, "commit", "sha") for version, raw in scan.items}
            await self._resolve_dates(session, records, shas)
        await self.apply_vendor_downloads(session, records)
        return FetchResult.from_versions(records, stopped_early=scan.stopped_early)

    async def _resolve_dates(
        self,
        session: SourceSession,
        records: list[ReleaseRecord],
        shas: dict[str, Any],
    ) -> None:
        wanted = [sha for sha in shas.values() if isinstance(sha, str)]
        if not wanted:
            return
        dates = await resolve_commit_dates(session, self.owner, self.repo, wanted)
        for record in records:
            sha = shas.get(record.version)
            if isinstance(sha, str) and dates.get(sha):
                record.published_at = dates[sha]
