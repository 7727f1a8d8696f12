"""Utility helpers."""

from .parsing import format_file_size, slugify
from .versions import compare_versions, is_stable, normalize_version, sort_newest_first

__all__ = ["compare_versions", "format_file_size", "is_stable", "normalize_version", "slugify", "sort_newest_first"]
