"""Item-List Cache — injected LRU + TTL cache of fetched set item lists.

Invariants:
    - At most max_entries sets cached; least recently used evicted first
    - Entries older than ttl_seconds are never returned
    - One instance per owner, passed by reference; no module-level cache
    - Cached lists are tuples of frozen ItemRecord, so callers cannot mutate them

Design Decisions:
    - OrderedDict LRU: set lists are few and large, so per-entry bookkeeping is cheap
    - Clock injectable for deterministic expiry tests
"""

import logging
import time
from collections import OrderedDict
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from binder_planner.schemas.item import ItemRecord

logger = logging.getLogger(__name__)


@dataclass
class _CachedList:
    items: tuple[ItemRecord, ...]
    stored_at: float


class ItemListCache:
    """Set id -> fetched item list, with bounded size and expiry."""

    def __init__(
        self,
        max_entries: int = 32,
        ttl_seconds: float = 900.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be > 0, got {ttl_seconds}")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, _CachedList] = OrderedDict()
        self.hits = 0
        self.misses = 0

    @classmethod
    def from_settings(cls, settings) -> "ItemListCache":
        return cls(
            max_entries=settings.item_cache_max_entries,
            ttl_seconds=settings.item_cache_ttl_seconds,
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, set_id: str) -> bool:
        return self.get(set_id, count=False) is not None

    def get(self, set_id: str, *, count: bool = True) -> tuple[ItemRecord, ...] | None:
        cached = self._entries.get(set_id)
        if cached is None or self._expired(cached):
            if cached is not None:
                del self._entries[set_id]
                logger.debug(f"Item list for {set_id} expired", extra={"set_id": set_id})
            if count:
                self.misses += 1
            return None
        self._entries.move_to_end(set_id)
        if count:
            self.hits += 1
        return cached.items

    def put(self, set_id: str, items: Sequence[ItemRecord]) -> None:
        self._entries[set_id] = _CachedList(tuple(items), self._clock())
        self._entries.move_to_end(set_id)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Evicted item list for {evicted}", extra={"set_id": evicted})

    def invalidate(self, set_id: str) -> bool:
        return self._entries.pop(set_id, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def _expired(self, cached: _CachedList) -> bool:
        return self._clock() - cached.stored_at >= self.ttl_seconds
