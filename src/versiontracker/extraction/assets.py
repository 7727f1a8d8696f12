"""Release asset extraction and platform classification."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from versiontracker.models.release import DownloadAsset, Platform
from versiontracker.utils.parsing import format_file_size

if TYPE_CHECKING:
    from collections.abc import Iterable

_WINDOWS_MARKERS = ("win", "windows")
_WINDOWS_SUFFIXES = (".exe", ".msi")
_LINUX_MARKERS = ("linux", "ubuntu", "debian")
_LINUX_SUFFIXES = (".deb", ".rpm")
_MACOS_MARKERS = ("darwin", "macos", "mac", "apple")
_MACOS_SUFFIXES = (".pkg", ".dmg")


def extract_assets(raw_assets: Iterable[Any] | None) -> list[DownloadAsset]:
    """Convert GitHub release asset payloads into download assets, dropping any without a URL."""

    assets: list[DownloadAsset] = []
    for raw in raw_assets or []:
        if not isinstance(raw, dict):
            continue
        size_bytes = raw.get("size") if isinstance(raw.get("size"), int) else None
        try:
            asset = DownloadAsset(
                name=str(raw.get("name") or ""),
                url=raw.get("browser_download_url") or raw.get("url") or "",
                size_bytes=size_bytes,
                size=format_file_size(size_bytes),
                download_count=raw.get("download_count") if isinstance(raw.get("download_count"), int) else None,
            )
        except ValidationError:
            continue
        assets.append(asset)
    return assets


def classify_asset(name: str) -> Platform:
    """Route one file name to a platform bucket using fixed-priority filename heuristics."""

    lowered = name.lower()
    # Fixed priority: a "darwin" name also carries the "win" marker and lands in windows.
    if any(marker in lowered for marker in _WINDOWS_MARKERS) or lowered.endswith(_WINDOWS_SUFFIXES):
        return "windows"
    if (
        any(marker in lowered for marker in _LINUX_MARKERS)
        or lowered.endswith(_LINUX_SUFFIXES)
        or (lowered.endswith(".tar.gz") and "darwin" not in lowered)
    ):
        return "linux"
    if any(marker in lowered for marker in _MACOS_MARKERS) or lowered.endswith(_MACOS_SUFFIXES):
        return "macos"
    return "other"


def classify_downloads(assets: Iterable[DownloadAsset]) -> dict[Platform, list[DownloadAsset]] | None:
    """Group assets into platform buckets.

    Empty buckets are omitted. Returns None, not an empty mapping, when there
    is nothing to categorize so callers can tell "fetched but empty" apart
    from a mapping that was never built.
    """

    buckets: dict[Platform, list[DownloadAsset]] = {}
    for asset in assets:
        if not asset.url:
            continue
        buckets.setdefault(classify_asset(asset.name), []).append(asset)
    order: tuple[Platform, ...] = ("windows", "linux", "macos", "other")
    ordered = {platform: buckets[platform] for platform in order if platform in buckets}
    return ordered or None


def total_download_count(assets: Iterable[DownloadAsset]) -> int:
    return sum(asset.download_count or 0 for asset in assets)
