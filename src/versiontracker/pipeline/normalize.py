"""Canonical output schema for published release data."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from versiontracker.models.release import category_slug
from versiontracker.utils.parsing import slugify
from versiontracker.utils.versions import is_stable

if TYPE_CHECKING:
    from versiontracker.models.release import DownloadAsset, ReleaseRecord, SoftwareEntry

OUTPUT_PLATFORMS = ("windows", "linux", "macos", "source")


def drop_nulls(payload: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in payload.items() if value is not None}


def normalize_asset(asset: DownloadAsset) -> dict[str, Any]:
    return drop_nulls(
        {
            "name": asset.name,
            "url": asset.url,
            "size": asset.size,
            "size_bytes": asset.size_bytes,
            "type": asset.type,
            "arch": asset.arch,
        }
    )


def _official_bucket(key: str) -> str:
    if "windows" in key:
        return "windows"
    if "linux" in key:
        return "linux"
    if "mac" in key or "darwin" in key:
        return "macos"
    return "source"


def normalize_downloads(record: ReleaseRecord) -> dict[str, list[dict[str, Any]]]:
    """Fold a record's downloads into the four published buckets.

    ``other`` assets are appended to ``source``; explicit source archive links
    replace the ``source`` bucket; legacy ``official_downloads`` name->url
    mappings are routed by key. Empty buckets are omitted.
    """

    buckets: dict[str, list[dict[str, Any]]] = {platform: [] for platform in OUTPUT_PLATFORMS}
    downloads = record.downloads or {}
    for platform in OUTPUT_PLATFORMS:
        buckets[platform] = [normalize_asset(asset) for asset in downloads.get(platform, []) if asset.url]
    for asset in downloads.get("other", []):
        if asset.url:
            buckets["source"].append(
                drop_nulls({"name": asset.name, "url": asset.url, "size": asset.size, "type": asset.type or "other"})
            )

    if record.source_download is not None:
        buckets["source"] = []
        if record.source_download.tarball:
            buckets["source"].append(
                {"name": "Source (tar.gz)", "url": record.source_download.tarball, "type": "tarball"}
            )
        if record.source_download.zipball:
            buckets["source"].append({"name": "Source (zip)", "url": record.source_download.zipball, "type": "zipball"})

    official = (record.model_extra or {}).get("official_downloads")
    if isinstance(official, dict):
        for key, url in official.items():
            if isinstance(url, str) and url:
                buckets[_official_bucket(str(key))].append({"name": key, "url": url, "type": key})

    return {platform: assets for platform, assets in buckets.items() if assets}


def normalize_release(record: ReleaseRecord) -> dict[str, Any]:
    """Project one record onto the published release shape, omitting nulls."""

    extra = record.model_extra or {}
    published_at = record.published_at or extra.get("date")
    payload: dict[str, Any] = {
        "version": record.version or None,
        "tag": record.tag or None,
        "published_at": published_at or None,
        "prerelease": bool(record.prerelease),
        "stable": is_stable(record),
        "release_url": record.release_url or None,
        "downloads": normalize_downloads(record) or None,
    }
    if "lts" in record.model_fields_set:
        payload["lts"] = record.lts
    if "major_version" in record.model_fields_set:
        payload["major_version"] = record.major_version
    return drop_nulls(payload)


def normalize_software(name: str, category: str, entry: SoftwareEntry) -> dict[str, Any]:
    """Full published view of one software: metadata, latest, latest stable and every version."""

    versions = [normalize_release(record) for record in entry.versions]
    latest = versions[0] if versions else (normalize_release(entry.latest) if entry.latest is not None else None)
    latest_stable = next((version for version in versions if version["stable"]), latest)
    payload: dict[str, Any] = {
        "name": name,
        "slug": slugify(name),
        "category": category,
        "category_slug": category_slug(category),
        "website": entry.website,
        "download_page": entry.download_page,
        "total_versions": len(versions),
        "latest": latest,
    }
    if latest_stable is not latest:
        payload["latest_stable"] = latest_stable
    payload["versions"] = versions
    return drop_nulls(payload)
