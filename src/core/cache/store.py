"""
Cache store port and its Redis implementation.

Purpose
-------
Business code talks to `CacheStore` only: four string-level operations that
any key/value backend with TTLs and glob scanning can provide. The Redis
adapter maps them onto `RedisService` and translates driver failures into
`CacheError` so callers never depend on redis-py exception types.

Operations
----------
- get(key)                     -> str | None
- set(key, value, ttl_seconds) -> None
- delete(keys)                 -> int (number of keys removed)
- scan_keys(pattern)           -> list[str] (glob pattern, SCAN semantics)
"""

from __future__ import annotations

from typing import Optional, Protocol, Sequence, runtime_checkable

from redis.exceptions import RedisError

from src.core.exceptions import CacheError
from src.core.redis.service import RedisService


@runtime_checkable
class CacheStore(Protocol):
    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None: ...

    async def delete(self, keys: Sequence[str]) -> int: ...

    async def scan_keys(self, pattern: str) -> list[str]: ...


class RedisCacheStore:
    """`CacheStore` backed by the process-wide `RedisService` client."""

    async def get(self, key: str) -> Optional[str]:
        try:
            return await RedisService.get(key)
        except (RedisError, RuntimeError) as exc:
            raise CacheError("get", key, exc) from exc

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await RedisService.set(key, value, ttl_seconds=ttl_seconds)
        except (RedisError, RuntimeError) as exc:
            raise CacheError("set", key, exc) from exc

    async def delete(self, keys: Sequence[str]) -> int:
        if not keys:
            return 0
        try:
            return await RedisService.delete(*keys)
        except (RedisError, RuntimeError) as exc:
            raise CacheError("delete", ",".join(keys), exc) from exc

    async def scan_keys(self, pattern: str) -> list[str]:
        try:
            return await RedisService.scan_keys(pattern)
        except (RedisError, RuntimeError) as exc:
            raise CacheError("scan", pattern, exc) from exc
