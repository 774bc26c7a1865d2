"""In-process TTL cache with tag-based invalidation.

One instance is created by the engine wiring and passed to every component
that caches reads. Entries carry tags; invalidating a tag drops every entry
that carries it and bumps the tag's generation.

Writers that compute a value outside the lock (availability search) take
a generation() snapshot first and pass it to set(); the value is then only
stored if none of its tags were invalidated in the meantime.
"""

from __future__ import annotations

import heapq
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable, TypeVar

T = TypeVar("T")

_MISSING = object()


@dataclass
class _Entry:
    value: Any
    expires_at: float
    tags: frozenset[str]


class TTLCache:
    """Thread-safe key/value cache with per-entry TTL and tags.

    Expired entries are purged on every write, so keys that are never read
    again do not accumulate.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._by_tag: dict[str, set[str]] = {}
        self._generations: dict[str, int] = {}
        self._expiry: list[tuple[float, str]] = []
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            if entry.expires_at <= self._clock():
                self._drop(key)
                return default
            return entry.value

    def generation(self, *tags: str) -> int:
        """Snapshot of the tags' invalidation counters, for set(generation=)."""
        with self._lock:
            return sum(self._generations.get(tag, 0) for tag in tags)

    def set(
        self,
        key: str,
        value: Any,
        ttl: float,
        tags: Iterable[str] = (),
        *,
        generation: int | None = None,
    ) -> bool:
        """Store value under key.

        Returns False (and stores nothing) when ttl <= 0, or when generation
        is given and one of the tags was invalidated since it was taken.
        """
        if ttl <= 0:
            return False
        tag_set = frozenset(tags)
        with self._lock:
            now = self._clock()
            self._purge_expired(now)
            if generation is not None and generation != sum(
                self._generations.get(tag, 0) for tag in tag_set
            ):
                return False
            self._drop(key)
            expires_at = now + ttl
            self._entries[key] = _Entry(value, expires_at, tag_set)
            heapq.heappush(self._expiry, (expires_at, key))
            for tag in tag_set:
                self._by_tag.setdefault(tag, set()).add(key)
            return True

    def get_or_set(
        self,
        key: str,
        loader: Callable[[], T],
        ttl: float,
        tags: Iterable[str] = (),
    ) -> T:
        """Return the cached value for key, loading and storing it on a miss.

        The loader runs outside the lock; two concurrent misses may both load.
        """
        value = self.get(key, _MISSING)
        if value is not _MISSING:
            return value
        value = loader()
        self.set(key, value, ttl, tags)
        return value

    def delete(self, key: str) -> None:
        with self._lock:
            self._drop(key)

    def invalidate_tags(self, *tags: str) -> int:
        """Drop every entry carrying any of the tags. Returns entries dropped."""
        dropped = 0
        with self._lock:
            for tag in tags:
                self._generations[tag] = self._generations.get(tag, 0) + 1
                for key in list(self._by_tag.get(tag, ())):
                    self._drop(key)
                    dropped += 1
        return dropped

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._by_tag.clear()
            self._expiry.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _purge_expired(self, now: float) -> None:
        while self._expiry and self._expiry[0][0] <= now:
            expires_at, key = heapq.heappop(self._expiry)
            entry = self._entries.get(key)
            # Heap items outlive overwritten or deleted keys
            if entry is not None and entry.expires_at == expires_at:
                self._drop(key)

    def _drop(self, key: str) -> None:
        entry = self._entries.pop(key, None)
        if entry is None:
            return
        for tag in entry.tags:
            keys = self._by_tag.get(tag)
            if keys is not None:
                keys.discard(key)
                if not keys:
                    del self._by_tag[tag]


def night_tag(night: Any) -> str:
    return f"night:{night.isoformat()}"


def inventory_tag(room_type_id: int) -> str:
    return f"inventory:{room_type_id}"


def config_tag(kind: str) -> str:
    return f"config:{kind}"
