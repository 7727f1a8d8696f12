"""Core data models for tracked software and their releases."""

from __future__ import annotations

from collections.abc import Iterator  # noqa: TC003
from datetime import datetime
from enum import StrEnum
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

Platform = Literal["windows", "linux", "macos", "source", "other"]
PLATFORMS: tuple[Platform, ...] = ("windows", "linux", "macos", "source", "other")


class DownloadAsset(BaseModel):
    """One downloadable artifact of a release."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    name: str
    url: str = Field(min_length=1, validation_alias=AliasChoices("url", "download_url"))
    size: str | None = None
    size_bytes: int | None = None
    type: str | None = None
    arch: str | None = None
    sha256: str | None = None
    download_count: int | None = None


def _asset_url(raw: Any) -> str | None:
    if isinstance(raw, DownloadAsset):
        return raw.url
    if isinstance(raw, dict):
        url = raw.get("url") or raw.get("download_url")
        return url if isinstance(url, str) and url else None
    return None


def _coerce_bucket(platform: str, raw: Any) -> list[Any]:
    """Coerce the legacy bucket shapes (list, name->url mapping, bare url) into a list of assets."""

    if isinstance(raw, str):
        return [{"name": platform, "url": raw, "type": platform}] if raw else []
    if isinstance(raw, dict):
        return [
            {"name": key, "url": url, "type": key} for key, url in raw.items() if isinstance(url, str) and url
        ]
    if isinstance(raw, list):
        return [item for item in raw if _asset_url(item) is not None]
    return []


class SourceDownload(BaseModel):
    """Source archive links for tag-only upstreams."""

    tarball: str | None = None
    zipball: str | None = None


class ReleaseRecord(BaseModel):
    """One observed version of one tracked software.

    ``version`` is the identity key inside a software's version list. Only
    fields in ``model_fields_set`` (plus vendor extras) were actually observed;
    the merge engine relies on that to tell "absent" apart from "null".
    """

    model_config = ConfigDict(extra="allow")

    version: str
    tag: str | None = None
    published_at: str | None = None
    prerelease: bool | None = None
    stable: bool | None = None
    release_url: str | None = None
    downloads: dict[Platform, list[DownloadAsset]] | None = None
    source_download: SourceDownload | None = None
    total_downloads: int | None = None
    lts: bool | str | None = None
    major_version: int | None = None
    install_command: str | None = None

    @field_validator("downloads", mode="before")
    @classmethod
    def _coerce_downloads(cls, value: Any) -> Any:
        if value is None or not isinstance(value, dict):
            return None
        coerced = {
            platform: _coerce_bucket(platform, bucket) for platform, bucket in value.items() if platform in PLATFORMS
        }
        return {platform: bucket for platform, bucket in coerced.items() if bucket} or None

    @field_validator("published_at", mode="before")
    @classmethod
    def _published_at_to_text(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.isoformat().replace("+00:00", "Z")
        return value or None

    def observed(self) -> dict[str, Any]:
        """Return the fields this record actually carries, extras included."""

        data = self.model_dump(exclude_unset=True)
        data.update(self.model_extra or {})
        return data


class SoftwareEntry(BaseModel):
    """Aggregate of all known releases plus metadata for one tracked product."""

    model_config = ConfigDict(extra="allow")

    name: str | None = None
    category: str | None = None
    category_slug: str | None = None
    website: str | None = None
    download_page: str | None = None
    versions: list[ReleaseRecord] = Field(default_factory=list)
    latest: ReleaseRecord | None = None
    total_versions: int = Field(default=0, ge=0)
    fetched_at: datetime | None = None
    last_error: str | None = None

    @model_validator(mode="after")
    def _derive_category_slug(self) -> SoftwareEntry:
        if self.category and not self.category_slug:
            self.category_slug = category_slug(self.category)
        return self


def category_slug(category: str) -> str:
    """Lowercase a category label and turn whitespace runs into hyphens."""

    return "-".join(category.lower().split())


class VersionsDataset(BaseModel):
    """The persisted document: category -> software name -> entry."""

    model_config = ConfigDict(extra="ignore")

    last_updated: datetime | None = None
    incremental_mode: bool = True
    software: dict[str, dict[str, SoftwareEntry]] = Field(default_factory=dict)

    def get_entry(self, category: str, name: str) -> SoftwareEntry | None:
        return self.software.get(category, {}).get(name)

    def set_entry(self, category: str, name: str, entry: SoftwareEntry) -> None:
        self.software.setdefault(category, {})[name] = entry

    def iter_entries(self) -> Iterator[tuple[str, str, SoftwareEntry]]:
        for category, entries in self.software.items():
            for name, entry in entries.items():
                yield category, name, entry

    @property
    def total_software(self) -> int:
        return sum(len(entries) for entries in self.software.values())


class FetchResult(BaseModel):
    """What a source provider observed upstream: only versions not already known."""

    latest: ReleaseRecord | None = None
    versions: list[ReleaseRecord] = Field(default_factory=list)
    total_versions: int = Field(default=0, ge=0)
    new_versions_count: int = Field(default=0, ge=0)
    stopped_early: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_versions(
        cls,
        versions: list[ReleaseRecord],
        *,
        stopped_early: bool = False,
        metadata: dict[str, Any] | None = None,
    ) -> FetchResult:
        return cls(
            latest=versions[0] if versions else None,
            versions=versions,
            total_versions=len(versions),
            new_versions_count=len(versions),
            stopped_early=stopped_early,
            metadata=metadata or {},
        )


class FetchState(StrEnum):
    """Per-software lifecycle during one orchestration run."""

    PENDING = "pending"
    FETCHING = "fetching"
    MERGED = "merged"
    PRESERVED_ON_ERROR = "preserved_on_error"


class SoftwareRunSummary(BaseModel):
    """Outcome for one tracked software in one run."""

    name: str
    category: str
    state: FetchState = FetchState.PENDING
    added: int = 0
    total_versions: int = 0
    stopped_early: bool = False
    error: str | None = None


class RunReport(BaseModel):
    """Outcome of one full orchestration pass."""

    run_id: str
    started_at: datetime
    finished_at: datetime | None = None
    software: list[SoftwareRunSummary] = Field(default_factory=list)
    rate_limited_percent: float = 0.0

    @property
    def merged(self) -> int:
        return sum(1 for item in self.software if item.state is FetchState.MERGED)

    @property
    def failed(self) -> int:
        return sum(1 for item in self.software if item.state is FetchState.PRESERVED_ON_ERROR)

    @property
    def added(self) -> int:
        return sum(item.added for item in self.software)
