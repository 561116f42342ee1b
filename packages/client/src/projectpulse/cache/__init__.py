"""Client-side query cache."""

from projectpulse.cache.query_cache import CacheEntry, QueryCache, make_key

__all__ = ["CacheEntry", "QueryCache", "make_key"]
