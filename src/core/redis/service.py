"""
RedisService: async Redis infrastructure.

Purpose
-------
Provide an observable Redis abstraction with:
- Singleton async client with connection pooling
- KV operations used by the cache layer (get/set/delete/scan)
- Sorted-set operations used by the streak leaderboard
- Health checks and per-operation metrics

Responsibilities
----------------
- Initialize and manage a singleton Redis connection pool
- Log every operation with structured context and latency
- Record operation counts, failures, and cumulative latency

Non-Responsibilities
--------------------
- Business logic of any kind
- Deciding whether a failure is fatal (callers decide; the cache layer
  degrades, the leaderboard logs and moves on)

Configuration Keys
------------------
- core.redis.url                     : str (falls back to Config.REDIS_URL)
- core.redis.socket_timeout_seconds  : int (falls back to Config.REDIS_SOCKET_TIMEOUT)
- core.redis.max_connections         : int (falls back to Config.REDIS_MAX_CONNECTIONS)
- core.redis.default_ttl_seconds     : int (default 300)
- core.redis.scan_count              : int (default 500)
"""

from __future__ import annotations

import asyncio
import time
from collections import defaultdict
from typing import Any, Awaitable, Callable, Optional, TypeVar

from redis.asyncio.client import Redis as AsyncRedis  # type: ignore[misc]
from redis.exceptions import RedisError

from src.core.config.config import Config
from src.core.config.manager import ConfigManager
from src.core.exceptions import RedisConnectionError
from src.core.logging.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class RedisService:
    """
    Async Redis infrastructure service.

    All methods are classmethods over a process-wide client; tests may inject
    a client directly with `use_client()`.
    """

    _client: Optional[AsyncRedis] = None
    _init_lock: asyncio.Lock = asyncio.Lock()
    _is_healthy: bool = False

    _op_counts: dict[str, int] = defaultdict(int)
    _op_failures: dict[str, int] = defaultdict(int)
    _op_latency_ms: dict[str, float] = defaultdict(float)

    # ═══════════════════════════════════════════════════════════════════════
    # LIFECYCLE MANAGEMENT
    # ═══════════════════════════════════════════════════════════════════════

    @classmethod
    async def initialize(cls, url: Optional[str] = None) -> None:
        """
        Initialize the singleton Redis client (idempotent).

        Raises
        ------
        RedisConnectionError
            If the connection cannot be established.
        """
        if cls._client is not None:
            logger.debug("RedisService already initialized, skipping")
            return

        async with cls._init_lock:
            if cls._client is not None:
                return

            url = url or ConfigManager.get("core.redis.url", Config.REDIS_URL)
            socket_timeout = int(
                ConfigManager.get("core.redis.socket_timeout_seconds", Config.REDIS_SOCKET_TIMEOUT)
            )
            max_connections = int(
                ConfigManager.get("core.redis.max_connections", Config.REDIS_MAX_CONNECTIONS)
            )

            start_time = time.monotonic()
            client: Optional[AsyncRedis] = None
            try:
                client = AsyncRedis.from_url(
                    url,
                    socket_timeout=socket_timeout,
                    encoding="utf-8",
                    decode_responses=True,
                    max_connections=max_connections,
                    health_check_interval=30,
                )
                await client.ping()  # type: ignore[misc]
            except Exception as exc:
                if client is not None:
                    await client.aclose()
                cls._is_healthy = False
                logger.critical(
                    "Failed to initialize RedisService",
                    extra={
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                        "url_scheme": url.split("://")[0] if "://" in url else "unknown",
                    },
                    exc_info=True,
                )
                raise RedisConnectionError("initialize", exc) from exc

            cls._client = client
            cls._is_healthy = True
            logger.info(
                "RedisService initialized successfully",
                extra={
                    "url_scheme": url.split("://")[0] if "://" in url else "unknown",
                    "socket_timeout_seconds": socket_timeout,
                    "max_connections": max_connections,
                    "initialization_time_ms": round((time.monotonic() - start_time) * 1000, 2),
                },
            )

    @classmethod
    def use_client(cls, client: AsyncRedis) -> None:
        """Install an already-connected client (testcontainers, fakes)."""
        cls._client = client
        cls._is_healthy = True

    @classmethod
    async def shutdown(cls) -> None:
        """Close the client; safe to call when not initialized."""
        client = cls._client
        cls._client = None
        cls._is_healthy = False

        if client is None:
            return

        try:
            await client.aclose()
            logger.info("RedisService shutdown complete")
        except RedisError as exc:
            logger.error(
                "Error during RedisService shutdown",
                extra={"error": str(exc), "error_type": type(exc).__name__},
                exc_info=True,
            )

    # ═══════════════════════════════════════════════════════════════════════
    # HEALTH & STATUS
    # ═══════════════════════════════════════════════════════════════════════

    @classmethod
    async def health_check(cls) -> bool:
        """Verify Redis connectivity via PING; never raises."""
        if cls._client is None:
            logger.warning("Health check failed: RedisService not initialized")
            cls._is_healthy = False
            return False

        try:
            start_time = time.monotonic()
            pong = await cls._client.ping()  # type: ignore[misc]
            cls._is_healthy = bool(pong)
            logger.debug(
                "Redis health check completed",
                extra={
                    "healthy": cls._is_healthy,
                    "latency_ms": round((time.monotonic() - start_time) * 1000, 2),
                },
            )
            return cls._is_healthy
        except RedisError as exc:
            cls._is_healthy = False
            logger.error(
                "Redis health check failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
            return False

    @classmethod
    def get_status(cls) -> dict[str, Any]:
        return {
            "initialized": cls._client is not None,
            "healthy": cls._is_healthy,
            "operations": dict(cls._op_counts),
            "failures": dict(cls._op_failures),
            "latency_ms": {op: round(ms, 2) for op, ms in cls._op_latency_ms.items()},
        }

    @classmethod
    def client(cls) -> AsyncRedis:
        """
        Return the singleton Redis client.

        Raises
        ------
        RuntimeError
            If RedisService has not been initialized.
        """
        if cls._client is None:
            raise RuntimeError(
                "RedisService not initialized. "
                "Call `await RedisService.initialize()` first."
            )
        return cls._client

    # ═══════════════════════════════════════════════════════════════════════
    # INSTRUMENTATION
    # ═══════════════════════════════════════════════════════════════════════

    @classmethod
    async def _execute(
        cls,
        op_name: str,
        operation: Callable[[], Awaitable[T]],
        **log_fields: Any,
    ) -> T:
        start_time = time.monotonic()
        try:
            result = await operation()
        except Exception as exc:
            latency_ms = (time.monotonic() - start_time) * 1000
            cls._op_counts[op_name] += 1
            cls._op_failures[op_name] += 1
            cls._op_latency_ms[op_name] += latency_ms
            logger.error(
                f"Redis {op_name} operation failed",
                extra={
                    **log_fields,
                    "latency_ms": round(latency_ms, 2),
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
            raise

        latency_ms = (time.monotonic() - start_time) * 1000
        cls._op_counts[op_name] += 1
        cls._op_latency_ms[op_name] += latency_ms
        logger.debug(
            f"Redis {op_name} operation",
            extra={**log_fields, "latency_ms": round(latency_ms, 2)},
        )
        return result

    # ═══════════════════════════════════════════════════════════════════════
    # KEY / VALUE
    # ═══════════════════════════════════════════════════════════════════════

    @classmethod
    async def get(cls, key: str) -> Optional[str]:
        return await cls._execute("GET", lambda: cls.client().get(key), key=key)

    @classmethod
    async def set(cls, key: str, value: str, ttl_seconds: Optional[int] = None) -> bool:
        """Set a string value with a TTL (falls back to `core.redis.default_ttl_seconds`)."""
        if ttl_seconds is None:
            ttl_seconds = int(ConfigManager.get("core.redis.default_ttl_seconds", 300))

        result = await cls._execute(
            "SET",
            lambda: cls.client().set(key, value, ex=ttl_seconds),
            key=key,
            ttl_seconds=ttl_seconds,
        )
        return bool(result)

    @classmethod
    async def delete(cls, *keys: str) -> int:
        """Delete one or more keys; returns the number actually removed."""
        if not keys:
            return 0
        count = await cls._execute(
            "DELETE",
            lambda: cls.client().delete(*keys),
            key_count=len(keys),
        )
        return int(count)

    @classmethod
    async def scan_keys(cls, pattern: str, count: Optional[int] = None) -> list[str]:
        """
        Collect every key matching a glob-style pattern using SCAN.

        SCAN is incremental and never blocks the server the way KEYS does;
        the result may miss keys written during the iteration.
        """
        batch = int(count or ConfigManager.get("core.redis.scan_count", 500))

        async def _collect() -> list[str]:
            return [key async for key in cls.client().scan_iter(match=pattern, count=batch)]

        return await cls._execute("SCAN", _collect, pattern=pattern)

    # ═══════════════════════════════════════════════════════════════════════
    # SORTED SETS
    # ═══════════════════════════════════════════════════════════════════════

    @classmethod
    async def zadd(cls, key: str, mapping: dict[str, float]) -> int:
        result = await cls._execute(
            "ZADD", lambda: cls.client().zadd(key, mapping), key=key, members=len(mapping)
        )
        return int(result)

    @classmethod
    async def zscore(cls, key: str, member: str) -> Optional[float]:
        return await cls._execute(
            "ZSCORE", lambda: cls.client().zscore(key, member), key=key, member=member
        )

    @classmethod
    async def zrevrank(cls, key: str, member: str) -> Optional[int]:
        return await cls._execute(
            "ZREVRANK", lambda: cls.client().zrevrank(key, member), key=key, member=member
        )

    @classmethod
    async def zrevrange_with_scores(
        cls, key: str, start: int, stop: int
    ) -> list[tuple[str, float]]:
        return await cls._execute(
            "ZREVRANGE",
            lambda: cls.client().zrevrange(key, start, stop, withscores=True),
            key=key,
            start=start,
            stop=stop,
        )
