"""In-memory TTL cache for upstream JSON responses."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable


@dataclass
class _CacheEntry:
    value: Any
    stored_at: float


@dataclass
class ResponseCache:
    """URL-keyed response cache with a fixed time-to-live.

    Entries older than ``ttl_seconds`` are treated as missing and dropped on
    read. A TTL of 0 disables caching. The clock is injectable so expiry can be
    driven deterministically.
    """

    ttl_seconds: float = 300.0
    clock: Callable[[], float] = time.monotonic
    _entries: dict[str, _CacheEntry] = field(default_factory=dict, repr=False)
    hits: int = 0
    misses: int = 0

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None
        if self.clock() - entry.stored_at >= self.ttl_seconds:
            del self._entries[key]
            self.misses += 1
            return None
        self.hits += 1
        return entry.value

    def set(self, key: str, value: Any) -> None:
        if self.ttl_seconds <= 0:
            return
        self._entries[key] = _CacheEntry(value=value, stored_at=self.clock())

    def invalidate(self, key: str) -> bool:
        """Drop one entry; returns whether it was present."""
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
