"""
Service Container
=================

Purpose
-------
Builds the progress tracking object graph once and hands out the shared
instances.

Responsibilities
----------------
- Construct collaborators (record store, cache, plan lookups, leaderboard,
  badge notifier) and inject them into `ProgressRecordService`
- Register every cache invalidator on the EventBus
- Unregister them again on shutdown

Non-Responsibilities
--------------------
- Infrastructure start-up order (delegated to ApplicationContext)
- Business logic

Architecture Notes
------------------
- Every domain service follows the constructor pattern
  `(config_manager, event_bus, logger)`; extra collaborators are passed
  by keyword
- The cache store defaults to `RedisCacheStore`; tests pass an in-memory
  store instead
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from src.core.cache import (
    CacheInvalidator,
    CacheMetrics,
    CacheStore,
    ReadThroughCache,
    RedisCacheStore,
)
from src.core.logging.logger import get_logger
from src.domain.models.progress_record import PROGRESS_RECORD_CHANGED
from src.modules.badge import StreakBadgeNotifier
from src.modules.leaderboard import LeaderboardCacheInvalidator, StreakLeaderboardService
from src.modules.plan import (
    PlanCacheInvalidator,
    PlanOwnershipService,
    PlanStageCacheInvalidator,
)
from src.modules.progress.cache import ProgressRecordCache
from src.modules.progress.invalidation import (
    ProgressInvalidationDispatcher,
    ProgressRecordCacheInvalidator,
)
from src.modules.progress.repository import SqlAlchemyRecordStore
from src.modules.progress.service import ProgressRecordService

if TYPE_CHECKING:
    from logging import Logger

    from src.core.config.manager import ConfigManager
    from src.core.event.bus import EventBus


class ServiceContainer:
    """
    Dependency injection container for the progress tracking services.

    Usage:
        container = ServiceContainer(ConfigManager, event_bus, logger)
        await container.initialize()

        record = await container.progress_records.create(data, user)
    """

    def __init__(
        self,
        config_manager: type[ConfigManager] | ConfigManager,
        event_bus: EventBus,
        logger: Logger,
        cache_store: Optional[CacheStore] = None,
    ) -> None:
        self._config_manager = config_manager
        self._event_bus = event_bus
        self._logger = logger
        self._cache_store = cache_store

        self._cache_metrics = CacheMetrics()
        self._plans: Optional[PlanOwnershipService] = None
        self._leaderboard: Optional[StreakLeaderboardService] = None
        self._badges: Optional[StreakBadgeNotifier] = None
        self._progress_records: Optional[ProgressRecordService] = None
        self._listener_ids: List[str] = []

        self._initialized = False
        self._init_seconds: Optional[float] = None

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def initialize(self) -> None:
        if self._initialized:
            self._logger.warning("ServiceContainer already initialized")
            return

        start = time.perf_counter()
        self._logger.info("Service container initialization starting...")

        try:
            store = self._cache_store or RedisCacheStore()
            invalidator = CacheInvalidator(store, self._cache_metrics)

            self._plans = self._create_service(PlanOwnershipService)
            self._leaderboard = self._create_service(StreakLeaderboardService)
            self._badges = self._create_service(StreakBadgeNotifier)

            self._progress_records = ProgressRecordService(
                config_manager=self._config_manager,
                event_bus=self._event_bus,
                logger=get_logger(f"{ProgressRecordService.__module__}.ProgressRecordService"),
                store=SqlAlchemyRecordStore(),
                plans=self._plans,
                cache=ProgressRecordCache(ReadThroughCache(store, self._cache_metrics)),
                dispatcher=ProgressInvalidationDispatcher(self._event_bus),
                leaderboard=self._leaderboard,
                badges=self._badges,
            )

            for cache_invalidator in (
                ProgressRecordCacheInvalidator(invalidator),
                PlanCacheInvalidator(invalidator),
                PlanStageCacheInvalidator(invalidator),
                LeaderboardCacheInvalidator(invalidator),
            ):
                self._listener_ids.append(cache_invalidator.register(self._event_bus))
        except Exception:
            self._logger.error("Service container initialization failed", exc_info=True)
            raise

        self._initialized = True
        self._init_seconds = time.perf_counter() - start
        self._logger.info(
            "Service container initialized",
            extra={
                "duration_seconds": round(self._init_seconds, 3),
                "invalidators": len(self._listener_ids),
            },
        )

    def _create_service(self, cls: Any) -> Any:
        return cls(
            config_manager=self._config_manager,
            event_bus=self._event_bus,
            logger=get_logger(f"{cls.__module__}.{cls.__name__}"),
        )

    async def shutdown(self) -> None:
        if not self._initialized:
            return

        self._logger.info("Shutting down service container...")
        for listener_id in self._listener_ids:
            self._event_bus.unsubscribe(PROGRESS_RECORD_CHANGED, listener_id)
        self._listener_ids.clear()
        await self._event_bus.drain()

        self._initialized = False
        self._logger.info("Service container shut down")

    def health_check(self) -> Dict[str, Any]:
        return {
            "initialized": self._initialized,
            "init_seconds": round(self._init_seconds, 3) if self._init_seconds else None,
            "invalidators": len(self._listener_ids),
            "cache": self._cache_metrics.snapshot(),
        }

    # ========================================================================
    # Services
    # ========================================================================

    @property
    def progress_records(self) -> ProgressRecordService:
        if not self._initialized or self._progress_records is None:
            raise RuntimeError("ServiceContainer not initialized. Call initialize() first.")
        return self._progress_records

    @property
    def plans(self) -> PlanOwnershipService:
        if not self._initialized or self._plans is None:
            raise RuntimeError("ServiceContainer not initialized. Call initialize() first.")
        return self._plans

    @property
    def leaderboard(self) -> StreakLeaderboardService:
        if not self._initialized or self._leaderboard is None:
            raise RuntimeError("ServiceContainer not initialized. Call initialize() first.")
        return self._leaderboard

    @property
    def badges(self) -> StreakBadgeNotifier:
        if not self._initialized or self._badges is None:
            raise RuntimeError("ServiceContainer not initialized. Call initialize() first.")
        return self._badges

    @property
    def cache_metrics(self) -> CacheMetrics:
        return self._cache_metrics

    @property
    def is_initialized(self) -> bool:
        return self._initialized
