"""Tests for release asset extraction and platform classification."""

import pytest

from versiontracker.extraction.assets import (
    classify_asset,
    classify_downloads,
    extract_assets,
    total_download_count,
)
from versiontracker.models.release import DownloadAsset


@pytest.mark.parametrize(
    ("name", "platform"),
    [
        ("node-v22.1.0-win-x64.zip", "windows"),
        ("setup.exe", "windows"),
        ("installer.msi", "windows"),
        ("tool-x86_64-apple-darwin.tar.gz", "windows"),
        ("tool-darwin-arm64.zip", "windows"),
        ("tool-macos-arm64.zip", "macos"),
        ("tool-apple-silicon.pkg", "macos"),
        ("Docker.dmg", "macos"),
        ("tool-linux-amd64.zip", "linux"),
        ("package_1.0_amd64.deb", "linux"),
        ("tool-1.0.tar.gz", "linux"),
        ("checksums.txt", "other"),
        ("source.zip", "other"),
    ],
)
def test_classify_asset(name: str, platform: str) -> None:
    assert classify_asset(name) == platform


def test_extract_assets_skips_entries_without_url() -> None:
    assets = extract_assets(
        [
            {"name": "a.exe", "browser_download_url": "https://x/a.exe", "size": 1536, "download_count": 3},
            {"name": "b.zip", "browser_download_url": ""},
            "not-a-dict",
            {"name": "c.deb", "url": "https://x/c.deb", "size": "big"},
        ]
    )

    assert [asset.name for asset in assets] == ["a.exe", "c.deb"]
    assert assets[0].size == "1.50 KB"
    assert assets[0].size_bytes == 1536
    assert assets[1].size_bytes is None
    assert total_download_count(assets) == 3


def test_extract_assets_handles_missing_payload() -> None:
    assert extract_assets(None) == []


def test_classify_downloads_orders_buckets_and_returns_none_when_empty() -> None:
    assets = [
        DownloadAsset(name="notes.txt", url="https://x/notes.txt"),
        DownloadAsset(name="tool-linux.tar.gz", url="https://x/l.tar.gz"),
        DownloadAsset(name="tool.msi", url="https://x/w.msi"),
    ]

    buckets = classify_downloads(assets)

    assert buckets is not None
    assert list(buckets) == ["windows", "linux", "other"]
    assert classify_downloads([]) is None


def test_windows_markers_take_priority_over_darwin() -> None:
    assets = [
        DownloadAsset(name="tool-darwin-amd64.tar.gz", url="https://x/d.tar.gz"),
        DownloadAsset(name="tool-macos-amd64.zip", url="https://x/m.zip"),
    ]

    buckets = classify_downloads(assets)

    assert buckets is not None
    assert [asset.name for asset in buckets["windows"]] == ["tool-darwin-amd64.tar.gz"]
    assert [asset.name for asset in buckets["macos"]] == ["tool-macos-amd64.zip"]
