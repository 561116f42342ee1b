"""Query cache — REST reads keyed by resource path.

Learn: Every read the client makes is cached under a query key whose first
element is the resource path:

    ("/api/projects",)                       → the project list
    ("/api/projects", (("teamId", "t1"),))   → a filtered project list
    ("/api/projects/p1",)                    → one project

Entries never go stale on a timer. They change only when the event router
says so:
- invalidate() marks matching entries stale; the next fetch() refetches.
- remove() evicts entries outright; nothing stale can be served.

Matching is by tuple prefix, so invalidating ("/api/projects",) hits every
filtered project list but NOT ("/api/projects/p1",), which is a different
path. Per-id entries are always addressed explicitly.

Single event loop, single writer. No locks.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Iterator, Optional, Union

import structlog

logger = structlog.get_logger()

QueryKey = tuple
KeyLike = Union[str, tuple, list]
Fetcher = Callable[[QueryKey], Awaitable[Any]]

# What happened to a key while its fetch was in flight
_STALE = "stale"
_EVICTED = "evicted"


def make_key(key: KeyLike) -> QueryKey:
    """Normalise a key: bare path → 1-tuple, dicts/lists → hashable tuples."""
    if isinstance(key, str):
        return (key,)
    return tuple(_freeze(part) for part in key)


def _freeze(value: Any) -> Any:
    if isinstance(value, dict):
        return tuple(sorted((k, _freeze(v)) for k, v in value.items()))
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


@dataclass
class CacheEntry:
    key: QueryKey
    data: Any
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    invalidated: bool = False
    fetch_count: int = 0


class QueryCache:
    """In-memory query cache with invalidate/evict and lazy refetch."""

    def __init__(self):
        self._entries: dict[QueryKey, CacheEntry] = {}
        self._inflight: dict[QueryKey, asyncio.Future] = {}
        self._touched: dict[QueryKey, str] = {}

    # ─── Reads ────────────────────────────────────────────

    def get_entry(self, key: KeyLike) -> Optional[CacheEntry]:
        return self._entries.get(make_key(key))

    def get_query_data(self, key: KeyLike) -> Any:
        entry = self.get_entry(key)
        return entry.data if entry else None

    def is_invalidated(self, key: KeyLike) -> bool:
        """True if the entry exists and is marked stale."""
        entry = self.get_entry(key)
        return bool(entry and entry.invalidated)

    def keys(self) -> list[QueryKey]:
        return list(self._entries)

    def __contains__(self, key: KeyLike) -> bool:
        return make_key(key) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[CacheEntry]:
        return iter(list(self._entries.values()))

    # ─── Writes ───────────────────────────────────────────

    def set_query_data(self, key: KeyLike, data: Any) -> CacheEntry:
        """Store data under a key as a fresh (valid) entry."""
        k = make_key(key)
        entry = self._entries.get(k)
        if entry is None:
            entry = CacheEntry(key=k, data=data)
            self._entries[k] = entry
        else:
            entry.data = data
            entry.updated_at = datetime.now(timezone.utc)
            entry.invalidated = False
        return entry

    def invalidate(self, key: KeyLike, exact: bool = False) -> int:
        """Mark matching entries stale. Returns how many were marked."""
        k = make_key(key)
        marked = 0
        for entry in self._matching(k, exact):
            entry.invalidated = True
            marked += 1
        for inflight_key in self._matching_inflight(k, exact):
            self._touched.setdefault(inflight_key, _STALE)
        return marked

    def remove(self, key: KeyLike, exact: bool = True) -> int:
        """Evict matching entries. Returns how many were removed."""
        k = make_key(key)
        doomed = [entry.key for entry in self._matching(k, exact)]
        for entry_key in doomed:
            del self._entries[entry_key]
        for inflight_key in self._matching_inflight(k, exact):
            self._touched[inflight_key] = _EVICTED
        return len(doomed)

    def clear(self) -> None:
        self._entries.clear()
        for inflight_key in self._inflight:
            self._touched[inflight_key] = _EVICTED

    # ─── Fetching ─────────────────────────────────────────

    async def fetch(self, key: KeyLike, fetcher: Fetcher) -> Any:
        """Return cached data, refetching if missing or invalidated.

        Learn: Concurrent fetches for the same key share one in-flight
        call. The shared load is shielded so a cancelled caller doesn't
        cancel it for everyone else. Fetch errors propagate to every waiter
        and leave the cache as it was.

        If the key is invalidated while the fetch is in flight, the result
        is stored but stays stale. If it is evicted, the result is returned
        to the callers but not stored.
        """
        k = make_key(key)
        entry = self._entries.get(k)
        if entry is not None and not entry.invalidated:
            return entry.data

        future = self._inflight.get(k)
        if future is None:
            future = asyncio.ensure_future(self._load(k, fetcher))
            self._inflight[k] = future
            future.add_done_callback(lambda f, k=k: self._finish(k, f))
        return await asyncio.shield(future)

    async def _load(self, key: QueryKey, fetcher: Fetcher) -> Any:
        self._touched.pop(key, None)
        data = await fetcher(key)
        touched = self._touched.pop(key, None)
        if touched == _EVICTED:
            logger.debug("cache.fetch_discarded", key=key[0])
            return data

        entry = self.set_query_data(key, data)
        entry.fetch_count += 1
        if touched == _STALE:
            entry.invalidated = True
        logger.debug("cache.fetched", key=key[0], invalidated=entry.invalidated)
        return data

    def _finish(self, key: QueryKey, future: asyncio.Future) -> None:
        if self._inflight.get(key) is future:
            del self._inflight[key]
            self._touched.pop(key, None)

    # ─── Helpers ──────────────────────────────────────────

    def _matching(self, key: QueryKey, exact: bool) -> list[CacheEntry]:
        if exact:
            entry = self._entries.get(key)
            return [entry] if entry else []
        n = len(key)
        return [e for k, e in self._entries.items() if k[:n] == key]

    def _matching_inflight(self, key: QueryKey, exact: bool) -> list[QueryKey]:
        if exact:
            return [key] if key in self._inflight else []
        n = len(key)
        return [k for k in self._inflight if k[:n] == key]
