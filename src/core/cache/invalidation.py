"""
Best-effort cache invalidation.

Each exact key and each glob pattern is handled on its own: a failing DEL
or SCAN is logged and counted, and the remaining keys and patterns are
still processed. Nothing here raises because of the store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from src.core.cache.metrics import CacheMetrics
from src.core.cache.store import CacheStore
from src.core.logging.logger import get_logger

logger = get_logger(__name__)


@dataclass
class InvalidationReport:
    """Outcome of one invalidation pass."""

    deleted: int = 0
    failed_keys: List[str] = field(default_factory=list)
    failed_patterns: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed_keys and not self.failed_patterns

    def merge(self, other: "InvalidationReport") -> "InvalidationReport":
        return InvalidationReport(
            deleted=self.deleted + other.deleted,
            failed_keys=self.failed_keys + other.failed_keys,
            failed_patterns=self.failed_patterns + other.failed_patterns,
        )


class CacheInvalidator:
    def __init__(self, store: CacheStore, metrics: Optional[CacheMetrics] = None) -> None:
        self.store = store
        self.metrics = metrics or CacheMetrics()

    async def invalidate_keys(self, keys: Iterable[str]) -> InvalidationReport:
        report = InvalidationReport()
        for key in keys:
            try:
                report.deleted += await self.store.delete([key])
            except Exception as exc:
                report.failed_keys.append(key)
                self.metrics.record_error("delete")
                logger.warning(
                    "Cache key invalidation failed",
                    extra={"cache_key": key, "error": str(exc), "error_type": type(exc).__name__},
                )
        self.metrics.record_invalidated(report.deleted)
        return report

    async def invalidate_patterns(self, patterns: Iterable[str]) -> InvalidationReport:
        report = InvalidationReport()
        for pattern in patterns:
            try:
                keys = await self.store.scan_keys(pattern)
                if keys:
                    report.deleted += await self.store.delete(keys)
            except Exception as exc:
                report.failed_patterns.append(pattern)
                self.metrics.record_error("scan")
                logger.warning(
                    "Cache pattern invalidation failed",
                    extra={"pattern": pattern, "error": str(exc), "error_type": type(exc).__name__},
                )
        self.metrics.record_invalidated(report.deleted)
        return report

    async def invalidate(
        self, keys: Iterable[str] = (), patterns: Iterable[str] = ()
    ) -> InvalidationReport:
        report = (await self.invalidate_keys(keys)).merge(
            await self.invalidate_patterns(patterns)
        )
        logger.debug(
            "Cache invalidation pass completed",
            extra={
                "deleted": report.deleted,
                "failed_keys": len(report.failed_keys),
                "failed_patterns": len(report.failed_patterns),
            },
        )
        return report
