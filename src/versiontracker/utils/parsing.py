"""Parsing and normalization helpers."""

from __future__ import annotations

import re

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")
_SIZE_UNITS = ("B", "KB", "MB", "GB")


def slugify(name: str) -> str:
    """Build a URL slug: lowercase, non-alphanumeric runs collapsed to '-', trailing hyphens trimmed."""

    return _NON_ALNUM_RE.sub("-", name.lower()).rstrip("-")


def format_file_size(size_bytes: int | None) -> str | None:
    """Render a byte count such as 1536 as '1.50 KB'."""

    if not size_bytes or size_bytes <= 0:
        return None
    exponent = min((size_bytes.bit_length() - 1) // 10, len(_SIZE_UNITS) - 1)
    return f"{size_bytes / 1024**exponent:.2f} {_SIZE_UNITS[exponent]}"


def parse_content_length(value: str | None) -> int | None:
    """Parse a Content-Length header value into a positive integer."""

    if value is None:
        return None
    text = value.strip()
    if not text.isdigit():
        return None
    parsed = int(text)
    return parsed if parsed > 0 else None


def major_minor(version: str) -> str:
    """Return the 'X.Y' prefix of a dotted version."""

    return ".".join(version.split(".")[:2])
