"""Tests for release data models."""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from tests.factories import make_entry, make_release
from versiontracker.models.release import (
    DownloadAsset,
    FetchResult,
    FetchState,
    ReleaseRecord,
    RunReport,
    SoftwareEntry,
    SoftwareRunSummary,
    VersionsDataset,
    category_slug,
)


def test_download_asset_accepts_legacy_download_url() -> None:
    asset = DownloadAsset.model_validate({"name": "a.zip", "download_url": "https://x/a.zip"})
    assert asset.url == "https://x/a.zip"


def test_download_asset_requires_url() -> None:
    with pytest.raises(ValidationError):
        DownloadAsset(name="a.zip", url="")


def test_release_downloads_drop_empty_buckets_and_urlless_assets() -> None:
    record = ReleaseRecord.model_validate(
        {
            "version": "1.0.0",
            "downloads": {
                "windows": [{"name": "a.exe", "download_url": "https://x/a.exe"}, {"name": "nourl"}],
                "linux": [],
                "freebsd": [{"name": "b", "url": "https://x/b"}],
            },
        }
    )
    assert record.downloads is not None
    assert list(record.downloads) == ["windows"]
    assert [a.name for a in record.downloads["windows"]] == ["a.exe"]


def test_release_downloads_none_when_every_bucket_empty() -> None:
    record = ReleaseRecord.model_validate({"version": "1.0.0", "downloads": {"windows": [], "source": []}})
    assert record.downloads is None


def test_release_downloads_coerce_mapping_and_string_buckets() -> None:
    record = ReleaseRecord.model_validate(
        {"version": "1.0.0", "downloads": {"source": "https://x/src.tar.gz", "windows": {"msi": "https://x/a.msi"}}}
    )
    assert record.downloads is not None
    assert record.downloads["source"][0].url == "https://x/src.tar.gz"
    assert record.downloads["source"][0].name == "source"
    assert record.downloads["windows"][0].name == "msi"


def test_release_published_at_from_datetime() -> None:
    record = ReleaseRecord(version="1", published_at=datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC))
    assert record.published_at == "2026-01-02T03:04:05Z"


def test_observed_only_reports_set_fields_and_extras() -> None:
    record = ReleaseRecord.model_validate({"version": "1.0.0", "tag": "v1.0.0", "release_date": "2026-01-01"})
    observed = record.observed()
    assert observed == {"version": "1.0.0", "tag": "v1.0.0", "release_date": "2026-01-01"}


def test_observed_keeps_explicit_null() -> None:
    record = ReleaseRecord.model_validate({"version": "1.0.0", "published_at": None})
    assert "published_at" in record.observed()


def test_category_slug() -> None:
    assert category_slug("Web Servers") == "web-servers"
    assert category_slug("Package  Managers") == "package-managers"


def test_software_entry_derives_category_slug_and_keeps_extras() -> None:
    entry = SoftwareEntry.model_validate({"category": "Package Managers", "install_command": "npm i -g npm"})
    assert entry.category_slug == "package-managers"
    assert entry.model_extra == {"install_command": "npm i -g npm"}


def test_dataset_entry_access() -> None:
    dataset = VersionsDataset()
    dataset.set_entry("Languages", "Go", make_entry("Go", "Languages", ["1.22.0"]))
    dataset.set_entry("Databases", "Redis", make_entry("Redis", "Databases", []))
    assert dataset.get_entry("Languages", "Go") is not None
    assert dataset.get_entry("Languages", "Rust") is None
    assert dataset.total_software == 2
    assert [name for _, name, _ in dataset.iter_entries()] == ["Go", "Redis"]


def test_fetch_result_from_versions() -> None:
    records = [make_release("2.0.0"), make_release("1.0.0")]
    result = FetchResult.from_versions(records, stopped_early=True, metadata={"download_page": "https://x"})
    assert result.latest is records[0]
    assert result.total_versions == 2
    assert result.new_versions_count == 2
    assert result.stopped_early is True


def test_fetch_result_empty_means_nothing_new() -> None:
    result = FetchResult.from_versions([])
    assert result.latest is None
    assert result.versions == []


def test_run_report_totals() -> None:
    report = RunReport(
        run_id="r",
        started_at=datetime.now(UTC),
        software=[
            SoftwareRunSummary(name="A", category="C", state=FetchState.MERGED, added=3),
            SoftwareRunSummary(name="B", category="C", state=FetchState.PRESERVED_ON_ERROR, error="boom"),
        ],
    )
    assert report.merged == 1
    assert report.failed == 1
    assert report.added == 3
