"""Human-readable markdown summary of the dataset (``VERSIONS.md``)."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from versiontracker.models.release import SoftwareEntry, VersionsDataset

ERROR_MARKER = "⚠️ Error"


def _summary_row(name: str, entry: SoftwareEntry) -> str:
    if entry.last_error and not entry.versions:
        return f"| {name} | {ERROR_MARKER} | - | - |"
    latest = entry.latest or (entry.versions[0] if entry.versions else None)
    version = latest.version if latest is not None else "N/A"
    total = entry.total_versions or len(entry.versions)
    website = f"[Website]({entry.website})" if entry.website else "-"
    return f"| {name} | {version} | {total} | {website} |"


def render_summary(dataset: VersionsDataset, *, dataset_filename: str = "all-versions.json") -> str:
    """One table per category: software, latest version, total versions, website."""

    last_updated = dataset.last_updated.isoformat().replace("+00:00", "Z") if dataset.last_updated else "never"
    lines = ["# Software Versions", "", f"> Last updated: {last_updated}", ""]
    for category, entries in dataset.software.items():
        lines += [
            f"## {category}",
            "",
            "| Software | Latest Version | Total Versions | Downloads |",
            "|----------|----------------|----------------|-----------|",
        ]
        lines += [_summary_row(name, entry) for name, entry in entries.items()]
        lines.append("")
    lines += [
        "---",
        "",
        f"*For full version history with downloads, see [{dataset_filename}](./{dataset_filename})*",
        "",
    ]
    return "\n".join(lines)
