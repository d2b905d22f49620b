"""
Cache subsystem.

Purpose
-------
A non-authoritative read accelerator in front of the database:

- **store.py**: `CacheStore` port and the Redis-backed implementation
- **keys.py**: deterministic key construction (prefix, operation, scope, fingerprint)
- **serialization.py**: JSON encoding and date rehydration
- **read_through.py**: `ReadThroughCache.get_or_load()` with graceful degradation
- **invalidation.py**: best-effort key and pattern invalidation
- **metrics.py**: hit/miss/error counters

Usage Example
-------------
>>> cache = ReadThroughCache(RedisCacheStore())
>>> record = await cache.get_or_load(key, loader, encode=to_dict, decode=from_dict)
"""

from src.core.cache.invalidation import CacheInvalidator, InvalidationReport
from src.core.cache.keys import build_cache_key, build_one_cache_key, fingerprint
from src.core.cache.metrics import CacheMetrics
from src.core.cache.read_through import ReadThroughCache
from src.core.cache.serialization import revive_dates
from src.core.cache.store import CacheStore, RedisCacheStore

__all__ = [
    "CacheStore",
    "RedisCacheStore",
    "ReadThroughCache",
    "CacheInvalidator",
    "InvalidationReport",
    "CacheMetrics",
    "build_cache_key",
    "build_one_cache_key",
    "fingerprint",
    "revive_dates",
]
