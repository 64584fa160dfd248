"""Short-lived stat metadata cache.

Entries live for TTL seconds. Each entry owns one expiry timer that removes
it; lookups never evict. A lookup that finds an entry past its TTL (timer
not fired yet) treats it as a miss.
"""

from __future__ import annotations

from dataclasses import dataclass

from panelfs.core.logging import get_logger
from panelfs.core.scheduler import Scheduler, TimerHandle

from .types import FileStat

_logger = get_logger(__name__)

STAT_TTL_SECONDS = 10.0


@dataclass
class StatCacheEntry:
    stat: FileStat
    created: float
    timer: TimerHandle
    hits: int = 0


class StatCache:
    def __init__(self, scheduler: Scheduler, ttl: float = STAT_TTL_SECONDS) -> None:
        self._scheduler = scheduler
        self._ttl = ttl
        self._entries: dict[str, StatCacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> FileStat | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._scheduler.now() - entry.created >= self._ttl:
            return None
        entry.hits += 1
        return entry.stat

    def hits(self, key: str) -> int | None:
        """Hit counter of a live entry (None when not cached)."""
        entry = self._entries.get(key)
        return entry.hits if entry else None

    def put(self, key: str, stat: FileStat) -> None:
        old = self._entries.pop(key, None)
        if old is not None:
            old.timer.cancel()

        timer = self._scheduler.call_later(self._ttl, lambda: self._expire(key))
        self._entries[key] = StatCacheEntry(stat=stat, created=self._scheduler.now(), timer=timer)

    def _expire(self, key: str) -> None:
        entry = self._entries.pop(key, None)
        if entry is not None:
            _logger.debug(f"{entry.hits} cache hits for stat requests on {key}")

    def discard(self, key: str) -> None:
        entry = self._entries.pop(key, None)
        if entry is not None:
            entry.timer.cancel()

    def clear(self) -> None:
        for entry in self._entries.values():
            entry.timer.cancel()
        self._entries.clear()
