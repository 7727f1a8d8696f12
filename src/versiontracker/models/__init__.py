"""Pydantic models."""

from .release import (
    PLATFORMS,
    DownloadAsset,
    FetchResult,
    FetchState,
    Platform,
    ReleaseRecord,
    RunReport,
    SoftwareEntry,
    SoftwareRunSummary,
    SourceDownload,
    VersionsDataset,
)

__all__ = [
    "PLATFORMS",
    "DownloadAsset",
    "FetchResult",
    "FetchState",
    "Platform",
    "ReleaseRecord",
    "RunReport",
    "SoftwareEntry",
    "SoftwareRunSummary",
    "SourceDownload",
    "VersionsDataset",
]
