"""Incremental merge of freshly fetched releases into persisted history."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from versiontracker.models.release import ReleaseRecord
from versiontracker.utils.versions import sort_newest_first

if TYPE_CHECKING:
    from collections.abc import Iterable


def merge_record(existing: ReleaseRecord, incoming: ReleaseRecord) -> ReleaseRecord:
    """Overlay the fields ``incoming`` observed onto ``existing``.

    ``downloads`` is the one field an incoming record cannot clear: when it
    has none, the existing downloads are kept.
    """

    merged: dict[str, Any] = existing.observed()
    fallback = merged.get("downloads")
    merged.update(incoming.observed())
    if not merged.get("downloads") and fallback:
        merged["downloads"] = fallback
    return ReleaseRecord.model_validate(merged)


def merge_versions(existing: Iterable[ReleaseRecord], incoming: Iterable[ReleaseRecord]) -> list[ReleaseRecord]:
    """Union of both lists keyed by ``version``, newest first.

    Every existing version survives. Re-merging the same incoming list is a
    no-op, and the result never has fewer versions than ``existing``.
    """

    by_version: dict[str, ReleaseRecord] = {}
    for record in existing:
        by_version[record.version] = record
    for record in incoming:
        current = by_version.get(record.version)
        by_version[record.version] = record if current is None else merge_record(current, record)
    return sort_newest_first(by_version.values())


def count_added(existing: Iterable[ReleaseRecord], merged: Iterable[ReleaseRecord]) -> int:
    """Number of versions in ``merged`` that ``existing`` did not have."""

    known = {record.version for record in existing}
    return sum(1 for record in merged if record.version not in known)
