"""Version identity, ordering and stability heuristics.

Ordering is a numeric heuristic, not semantic-version precedence: versions
are split on dots, each component is read by its leading digits (anything
else counts as 0) and compared left to right. Pre-release suffixes play no
part in ordering; they only feed :func:`is_stable`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import cmp_to_key
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Iterable

    from versiontracker.models.release import ReleaseRecord

RecordT = TypeVar("RecordT", bound="ReleaseRecord")

_LEADING_DIGITS_RE = re.compile(r"^\d+")
_UNSTABLE_RE = re.compile(
    r"alpha|beta|rc\d*(?![a-z])|preview|dev|snapshot|nightly|canary|(?<![a-z])pre(?![a-z])|test",
    re.IGNORECASE,
)


def version_parts(version: str | None) -> list[int]:
    """Split a version into numeric components; non-numeric components become 0."""

    if not version:
        return [0]
    parts: list[int] = []
    for component in version.split("."):
        match = _LEADING_DIGITS_RE.match(component.strip())
        parts.append(int(match.group(0)) if match else 0)
    return parts


def compare_versions(a: str | None, b: str | None) -> int:
    """Order two versions newest first.

    Negative when ``a`` is newer than ``b``, positive when older, 0 when every
    component matches (missing trailing components count as 0).
    """

    a_parts = version_parts(a)
    b_parts = version_parts(b)
    for index in range(max(len(a_parts), len(b_parts))):
        a_value = a_parts[index] if index < len(a_parts) else 0
        b_value = b_parts[index] if index < len(b_parts) else 0
        if a_value != b_value:
            return b_value - a_value
    return 0


def sort_newest_first(records: Iterable[RecordT]) -> list[RecordT]:
    """Stable sort of release records by version, newest first."""

    return sorted(records, key=cmp_to_key(lambda a, b: compare_versions(a.version, b.version)))


def has_unstable_marker(text: str | None) -> bool:
    return bool(text) and _UNSTABLE_RE.search(text) is not None


def is_stable(record: ReleaseRecord) -> bool:
    """Explicit vendor flag first, then the prerelease flag, then lexical markers."""

    if record.stable is not None:
        return record.stable
    if record.prerelease is True:
        return False
    return not (has_unstable_marker(record.version) or has_unstable_marker(record.tag))


@dataclass(frozen=True, slots=True)
class VersionRule:
    """Maps an upstream tag name to a version identity.

    ``pattern`` filters which tags are considered at all. A leading ``v`` is
    stripped, then the first matching ``strip_prefixes`` entry is removed, then
    ``separator`` is replaced by dots (``8_1_0`` -> ``8.1.0``).
    """

    pattern: re.Pattern[str] | None = None
    strip_prefixes: tuple[str, ...] = ()
    separator: str | None = None
    strip_v: bool = True

    def matches(self, tag: str) -> bool:
        return self.pattern is None or self.pattern.search(tag) is not None

    def apply(self, tag: str) -> str | None:
        if not tag or not self.matches(tag):
            return None
        version = tag[1:] if self.strip_v and tag.startswith("v") else tag
        for prefix in self.strip_prefixes:
            if version.startswith(prefix):
                version = version[len(prefix) :]
                break
        if self.separator:
            version = version.replace(self.separator, ".")
        return version or None


DEFAULT_RULE = VersionRule()


def normalize_version(raw: str, rule: VersionRule = DEFAULT_RULE) -> str | None:
    """Apply a vendor rule to a raw tag; None when the tag is filtered out."""

    return rule.apply(raw.strip())
