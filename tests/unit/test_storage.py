"""Tests for dataset persistence and the markdown summary."""

import json
from datetime import UTC, datetime
from pathlib import Path

from tests.factories import make_entry
from versiontracker.models.release import VersionsDataset
from versiontracker.storage.dataset import load_dataset, save_dataset, write_text_atomic
from versiontracker.storage.summary import ERROR_MARKER, render_summary


def _dataset() -> VersionsDataset:
    dataset = VersionsDataset(last_updated=datetime(2026, 3, 1, 12, 0, tzinfo=UTC))
    dataset.set_entry("Languages", "PHP", make_entry("PHP", "Languages", ["8.3.1", "8.3.0"]))
    dataset.set_entry("Databases", "Redis", make_entry("Redis", "Databases", [], last_error="HTTP 500"))
    return dataset


def test_load_missing_dataset_starts_empty(tmp_path: Path) -> None:
    dataset = load_dataset(tmp_path / "all-versions.json")
    assert dataset.software == {}
    assert dataset.last_updated is None


def test_save_then_load(tmp_path: Path) -> None:
    path = tmp_path / "versions" / "all-versions.json"
    save_dataset(path, _dataset())

    loaded = load_dataset(path)

    assert loaded.total_software == 2
    php = loaded.get_entry("Languages", "PHP")
    assert php is not None
    assert [record.version for record in php.versions] == ["8.3.1", "8.3.0"]
    assert list(tmp_path.joinpath("versions").glob("*.tmp")) == []


def test_save_omits_fields_never_observed(tmp_path: Path) -> None:
    path = tmp_path / "all-versions.json"
    save_dataset(path, _dataset())

    raw = json.loads(path.read_text())
    release = raw["software"]["Languages"]["PHP"]["versions"][0]
    assert release == {"version": "8.3.1", "tag": "v8.3.1"}


def test_second_save_keeps_backup(tmp_path: Path) -> None:
    path = tmp_path / "all-versions.json"
    save_dataset(path, VersionsDataset())
    save_dataset(path, _dataset())

    backup = path.with_suffix(".json.bak")
    assert backup.exists()
    assert json.loads(backup.read_text())["software"] == {}


def test_corrupt_dataset_falls_back_to_backup(tmp_path: Path) -> None:
    path = tmp_path / "all-versions.json"
    save_dataset(path, _dataset())
    save_dataset(path, _dataset())
    path.write_text("{not json")

    loaded = load_dataset(path)

    assert loaded.total_software == 2


def test_corrupt_dataset_without_backup_starts_empty(tmp_path: Path) -> None:
    path = tmp_path / "all-versions.json"
    path.write_text("[]")

    assert load_dataset(path).software == {}


def test_write_text_atomic_creates_parents(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "VERSIONS.md"
    write_text_atomic(path, "hello")
    assert path.read_text() == "hello"
    assert not path.with_suffix(".md.bak").exists()


def test_render_summary_tables() -> None:
    text = render_summary(_dataset())

    assert text.startswith("# Software Versions\n\n> Last updated: 2026-03-01T12:00:00Z")
    assert "## Languages" in text
    assert "| PHP | 8.3.1 | 2 | [Website](https://php.example) |" in text
    assert f"| Redis | {ERROR_MARKER} | - | - |" in text
    assert text.rstrip().endswith("[all-versions.json](./all-versions.json)*")


def test_render_summary_without_versions_or_error() -> None:
    dataset = VersionsDataset()
    dataset.set_entry("DevOps", "Docker", make_entry("Docker", "DevOps", [], website=None))

    text = render_summary(dataset, dataset_filename="data.json")

    assert "> Last updated: never" in text
    assert "| Docker | N/A | 0 | - |" in text
    assert "[data.json](./data.json)" in text
