"""
Application Context (Kernel)
============================

Purpose
-------
Starts and stops the infrastructure the progress tracking services depend
on, in dependency order.

Initialization Order
--------------------
    1. Config.validate()
    2. ConfigManager (YAML defaults)
    3. DatabaseService
    4. RedisService
    5. ServiceContainer (registers cache invalidators on the EventBus)

Shutdown runs in reverse. Each step is logged with its duration.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Any, Awaitable, Dict, Optional

from src.core.config.config import Config
from src.core.config.manager import ConfigManager
from src.core.database.service import DatabaseService
from src.core.event.bus import EventBus
from src.core.logging.logger import get_logger
from src.core.redis.service import RedisService
from src.core.services.container import ServiceContainer

logger = get_logger(__name__)


class ApplicationContext:
    """
    Infrastructure lifecycle owner.

    Usage:
        context = ApplicationContext()
        await context.initialize()
        service = context.service_container.progress_records
        ...
        await context.shutdown()
    """

    def __init__(
        self,
        event_bus: Optional[EventBus] = None,
        config_dir: Optional[Path] = None,
    ) -> None:
        self._event_bus = event_bus or EventBus()
        self._config_dir = config_dir
        self._service_container: Optional[ServiceContainer] = None
        self._initialized = False

    # ========================================================================
    # INITIALIZATION
    # ========================================================================

    async def initialize(self) -> None:
        """
        Raises:
            RuntimeError: If already initialized or any step fails
        """
        if self._initialized:
            raise RuntimeError("ApplicationContext already initialized")

        logger.info("Application context initialization starting")
        start_time = time.perf_counter()

        try:
            Config.validate()
            self._step("Config validated", start_time)

            step = time.perf_counter()
            ConfigManager.initialize(self._config_dir)
            self._step("ConfigManager initialized", step)

            step = time.perf_counter()
            await DatabaseService.initialize()
            self._step("DatabaseService initialized", step)

            step = time.perf_counter()
            await RedisService.initialize()
            self._step("RedisService initialized", step)

            step = time.perf_counter()
            self._service_container = ServiceContainer(
                config_manager=ConfigManager,
                event_bus=self._event_bus,
                logger=get_logger("src.core.services.container"),
            )
            await self._service_container.initialize()
            self._step("ServiceContainer initialized", step)
        except Exception as exc:
            logger.critical(
                "Application context initialization failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
                exc_info=True,
            )
            await self._emergency_shutdown()
            raise RuntimeError("Failed to initialize application context") from exc

        self._initialized = True
        logger.info(
            "Application context initialized",
            extra={"total_ms": round((time.perf_counter() - start_time) * 1000, 2)},
        )

    @staticmethod
    def _step(message: str, started: float) -> None:
        logger.info(message, extra={"duration_ms": round((time.perf_counter() - started) * 1000, 2)})

    # ========================================================================
    # SHUTDOWN (reverse order)
    # ========================================================================

    async def shutdown(self) -> None:
        if not self._initialized:
            logger.warning("ApplicationContext not initialized, nothing to shut down")
            return

        await self._shutdown_all()
        self._initialized = False
        logger.info("Application context shutdown complete")

    async def _emergency_shutdown(self) -> None:
        logger.warning("Performing emergency shutdown")
        await self._shutdown_all()

    async def _shutdown_all(self) -> None:
        if self._service_container is not None:
            await self._guarded("service container", self._service_container.shutdown())
        await self._guarded("redis", RedisService.shutdown())
        await self._guarded("database", DatabaseService.shutdown())

    @staticmethod
    async def _guarded(component: str, step: Awaitable[None]) -> None:
        try:
            await step
        except Exception as exc:
            logger.error(
                f"Error shutting down {component}",
                extra={"error": str(exc), "error_type": type(exc).__name__},
                exc_info=True,
            )

    # ========================================================================
    # HEALTH
    # ========================================================================

    async def health_check(self) -> Dict[str, Any]:
        """
        Snapshot of every infrastructure component.

        `healthy` is False when the database or Redis fails its ping.
        """
        database_ok = await DatabaseService.health_check()
        redis_ok = await RedisService.health_check()
        container = (
            self._service_container.health_check()
            if self._service_container is not None
            else {"initialized": False}
        )
        return {
            "healthy": self._initialized and database_ok and redis_ok,
            "database": {"reachable": database_ok, **DatabaseService.get_stats()},
            "redis": {"reachable": redis_ok, **RedisService.get_status()},
            "config": ConfigManager.get_metrics(),
            "environment": Config.get_metrics(),
            "services": container,
        }

    # ========================================================================
    # PROPERTIES
    # ========================================================================

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    @property
    def service_container(self) -> ServiceContainer:
        if not self._initialized or self._service_container is None:
            raise RuntimeError(
                "ServiceContainer not available: ApplicationContext not initialized"
            )
        return self._service_container

    @property
    def is_initialized(self) -> bool:
        return self._initialized
