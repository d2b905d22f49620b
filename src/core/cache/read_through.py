"""
Read-through cache over a `CacheStore`.

Purpose
-------
`get_or_load()` is the only read path the services use:

1. GET the key. A store failure is logged and treated as a miss.
2. On a hit, JSON-decode and hand the payload to `decode` (which revives
   dates and rebuilds domain objects). A payload that fails to decode is
   logged and treated as a miss.
3. On a miss, await `loader()`. `None` results are returned uncached.
4. Populate the key with `encode(result)` under the TTL. A failed SET is
   logged; the loaded value is still returned.

The store is never authoritative and nothing in this module raises because
of the store.

Configuration Keys
------------------
- progress.cache.ttl_seconds : int (default 300)
"""

from __future__ import annotations

import time
from typing import Any, Awaitable, Callable, Optional, TypeVar

from src.core.cache import serialization
from src.core.cache.metrics import CacheMetrics
from src.core.cache.store import CacheStore
from src.core.config.manager import ConfigManager
from src.core.logging.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_TTL_SECONDS = 300


class ReadThroughCache:
    def __init__(
        self,
        store: CacheStore,
        metrics: Optional[CacheMetrics] = None,
        default_ttl_seconds: Optional[int] = None,
    ) -> None:
        self.store = store
        self.metrics = metrics or CacheMetrics()
        self._default_ttl = default_ttl_seconds

    @property
    def default_ttl_seconds(self) -> int:
        if self._default_ttl is not None:
            return self._default_ttl
        value = ConfigManager.get("progress.cache.ttl_seconds", DEFAULT_TTL_SECONDS)
        try:
            ttl = int(value)
        except (TypeError, ValueError):
            ttl = 0
        if ttl < 1:
            logger.warning(
                "Invalid cache TTL in config, using default",
                extra={"config_key": "progress.cache.ttl_seconds", "value": value},
            )
            return DEFAULT_TTL_SECONDS
        return ttl

    async def _read(self, key: str) -> Optional[str]:
        start_time = time.perf_counter()
        try:
            return await self.store.get(key)
        except Exception as exc:
            self.metrics.record_error("get")
            logger.warning(
                "Cache read failed, falling back to store",
                extra={"cache_key": key, "error": str(exc), "error_type": type(exc).__name__},
            )
            return None
        finally:
            self.metrics.record_get_time((time.perf_counter() - start_time) * 1000)

    async def _write(
        self, key: str, value: T, encode: Callable[[T], Any], ttl_seconds: Optional[int]
    ) -> None:
        try:
            if ttl_seconds is None:
                ttl_seconds = self.default_ttl_seconds
            await self.store.set(key, serialization.dumps(encode(value)), ttl_seconds)
            self.metrics.record_set()
        except Exception as exc:
            self.metrics.record_error("set")
            logger.warning(
                "Cache population failed",
                extra={
                    "cache_key": key,
                    "ttl_seconds": ttl_seconds,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            )

    async def get_or_load(
        self,
        key: str,
        loader: Callable[[], Awaitable[Optional[T]]],
        encode: Callable[[T], Any],
        decode: Callable[[Any], T],
        ttl_seconds: Optional[int] = None,
    ) -> Optional[T]:
        """
        Return the cached value for `key`, loading and caching it on a miss.

        `encode` turns the loaded value into a JSON-compatible payload;
        `decode` performs the inverse on a hit. Both sides must produce the
        same shape so callers cannot tell a hit from a miss.
        """
        raw = await self._read(key)

        if raw is not None:
            try:
                value = decode(serialization.loads(raw))
            except (ValueError, TypeError, KeyError) as exc:
                self.metrics.record_error("decode")
                logger.warning(
                    "Discarding undecodable cache payload",
                    extra={"cache_key": key, "error": str(exc), "error_type": type(exc).__name__},
                )
            else:
                self.metrics.record_hit()
                logger.debug("Cache hit", extra={"cache_key": key})
                return value

        self.metrics.record_miss()
        logger.debug("Cache miss", extra={"cache_key": key})

        value = await loader()
        if value is None:
            return None

        await self._write(key, value, encode, ttl_seconds)
        return value
