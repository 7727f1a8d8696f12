"""Upstream source providers and the merge engine."""

from .base import SourceFetchError, SourceProvider, SourceSession, paginate_new_items
from .merger import count_added, merge_versions
from .registry import TrackedSoftware, build_registry

__all__ = [
    "SourceFetchError",
    "SourceProvider",
    "SourceSession",
    "TrackedSoftware",
    "build_registry",
    "count_added",
    "merge_versions",
    "paginate_new_items",
]
