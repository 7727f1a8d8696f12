"""Persisted dataset load/save with atomic writes and a .bak fallback."""

from __future__ import annotations

import contextlib
import json
import os
import tempfile
from pathlib import Path

from loguru import logger

from versiontracker.models.release import VersionsDataset


def dump_dataset(dataset: VersionsDataset) -> str:
    """Serialize the dataset; entry and release fields that were never observed stay absent."""

    payload = dataset.model_dump(mode="json", exclude={"software"})
    payload["software"] = {
        category: {name: entry.model_dump(mode="json", exclude_unset=True) for name, entry in entries.items()}
        for category, entries in dataset.software.items()
    }
    return json.dumps(payload, indent=2, ensure_ascii=False)


def _write_atomic(path: Path, data: str, *, keep_backup: bool) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(data)
        if keep_backup:
            bak = path.with_suffix(path.suffix + ".bak")
            with contextlib.suppress(FileNotFoundError):
                path.replace(bak)
        Path(tmp_path).replace(path)
    except BaseException:
        Path(tmp_path).unlink(missing_ok=True)
        raise


def save_dataset(path: Path, dataset: VersionsDataset) -> None:
    """Persist the dataset atomically (tempfile + replace); the previous file becomes ``.bak``."""

    _write_atomic(path, dump_dataset(dataset), keep_backup=True)
    logger.info("Saved {} software entries to {}", dataset.total_software, path)


def write_text_atomic(path: Path, text: str) -> None:
    _write_atomic(path, text, keep_backup=False)


def _try_load_bak(path: Path, *, reason: str) -> VersionsDataset | None:
    bak = path.with_suffix(path.suffix + ".bak")
    if not bak.exists():
        return None
    logger.warning("Dataset {} at {}, trying .bak fallback", reason, path)
    try:
        return VersionsDataset.model_validate_json(bak.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError):
        logger.error("Backup dataset also corrupt at {}", bak)
        return None


def load_dataset(path: Path) -> VersionsDataset:
    """Load the persisted dataset, falling back to ``.bak`` and then to an empty dataset."""

    if not path.exists():
        dataset = _try_load_bak(path, reason="missing")
    else:
        try:
            dataset = VersionsDataset.model_validate_json(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, ValueError):
            dataset = _try_load_bak(path, reason="corrupt")
    if dataset is None:
        logger.info("No usable dataset at {}, starting fresh", path)
        return VersionsDataset()
    return dataset
