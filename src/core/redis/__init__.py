"""
Redis subsystem: singleton async client with instrumented KV, SCAN and
sorted-set operations.
"""

from src.core.redis.service import RedisService

__all__ = ["RedisService"]
