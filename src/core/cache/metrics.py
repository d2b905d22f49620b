"""
Cache metrics tracking.

Counters are plain integers on an instance: the cache layer runs on a single
event loop, and each ReadThroughCache / CacheInvalidator pair shares one
CacheMetrics so hit rate and invalidation volume can be read together.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass
class CacheMetrics:
    """Hit/miss/error counters plus cumulative latency for cache reads."""

    hits: int = 0
    misses: int = 0
    sets: int = 0
    errors: int = 0
    invalidated_keys: int = 0
    total_get_time_ms: float = 0.0
    errors_by_operation: Dict[str, int] = field(default_factory=dict)

    def record_hit(self) -> None:
        self.hits += 1

    def record_miss(self) -> None:
        self.misses += 1

    def record_set(self) -> None:
        self.sets += 1

    def record_error(self, operation: str) -> None:
        self.errors += 1
        self.errors_by_operation[operation] = self.errors_by_operation.get(operation, 0) + 1

    def record_invalidated(self, count: int) -> None:
        self.invalidated_keys += count

    def record_get_time(self, elapsed_ms: float) -> None:
        self.total_get_time_ms += elapsed_ms

    @property
    def hit_rate(self) -> float:
        """Hit rate as a percentage (0.0 when nothing has been read yet)."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return round(self.hits / total * 100, 2)

    def snapshot(self) -> Dict[str, Any]:
        reads = self.hits + self.misses
        return {
            "hits": self.hits,
            "misses": self.misses,
            "sets": self.sets,
            "errors": self.errors,
            "errors_by_operation": dict(self.errors_by_operation),
            "invalidated_keys": self.invalidated_keys,
            "hit_rate": self.hit_rate,
            "avg_get_time_ms": round(self.total_get_time_ms / reads, 2) if reads else 0.0,
        }

    def reset(self) -> None:
        self.hits = 0
        self.misses = 0
        self.sets = 0
        self.errors = 0
        self.invalidated_keys = 0
        self.total_get_time_ms = 0.0
        self.errors_by_operation.clear()
