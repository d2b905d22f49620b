"""
EventBus: in-process publish/subscribe for domain events.

Purpose
-------
Decouple the module that changes state from the modules that react to it.
The progress module publishes ``progress_record.changed``; the progress,
plan and leaderboard modules each subscribe their own cache invalidator, and
none of them knows the others' key namespaces.

Configuration Keys
------------------
- core.event.listener_timeout.critical_seconds : float (default 5.0)
- core.event.listener_timeout.high_seconds     : float (default 5.0)

Thread Safety
-------------
Single event loop only. Registry mutations happen between awaits.

Usage Example
-------------
>>> bus = EventBus()
>>> bus.subscribe("progress_record.changed", on_changed)
>>> await bus.publish("progress_record.changed", {"plan_id": "p1", "user_id": "u1"})
"""

from __future__ import annotations

import inspect
from collections import defaultdict
from typing import Any, Optional

from src.core.config.manager import ConfigManager
from src.core.event.registry import ListenerRegistry
from src.core.event.scheduler import EventScheduler
from src.core.event.types import (
    CallbackType,
    EventListener,
    EventPayload,
    ListenerPriority,
)
from src.core.logging.logger import get_logger, set_log_context

logger = get_logger(__name__)

DEFAULT_LISTENER_TIMEOUT_SECONDS = 5.0


class EventBus:
    """
    Tiered-concurrency event bus.

    - CRITICAL / HIGH: sequential, awaited, with timeout
    - NORMAL: concurrent, awaited
    - LOW: fire-and-forget
    """

    def __init__(
        self,
        registry: Optional[ListenerRegistry] = None,
        scheduler: Optional[EventScheduler] = None,
        *,
        critical_timeout_seconds: Optional[float] = None,
        high_timeout_seconds: Optional[float] = None,
    ) -> None:
        self._registry = registry or ListenerRegistry()
        self._scheduler = scheduler or EventScheduler()
        self._published: dict[str, int] = defaultdict(int)

        self._critical_timeout = self._load_timeout(
            "core.event.listener_timeout.critical_seconds", critical_timeout_seconds
        )
        self._high_timeout = self._load_timeout(
            "core.event.listener_timeout.high_seconds", high_timeout_seconds
        )

        logger.debug(
            "EventBus initialized",
            extra={
                "critical_timeout_seconds": self._critical_timeout,
                "high_timeout_seconds": self._high_timeout,
            },
        )

    @staticmethod
    def _load_timeout(key: str, override: Optional[float]) -> float:
        if override is not None:
            return float(override)

        value = ConfigManager.get(key, DEFAULT_LISTENER_TIMEOUT_SECONDS)
        try:
            return float(value)
        except (TypeError, ValueError):
            logger.warning(
                "Invalid listener timeout in config, using default",
                extra={"config_key": key, "value": value},
            )
            return DEFAULT_LISTENER_TIMEOUT_SECONDS

    # ------------------------------------------------------------------ #
    # Subscription API
    # ------------------------------------------------------------------ #

    @staticmethod
    def _validate_callback_signature(callback: CallbackType) -> None:
        """Reject callbacks that cannot take exactly one payload argument."""
        try:
            sig = inspect.signature(callback)
        except (TypeError, ValueError):
            return

        params = list(sig.parameters.values())
        if len(params) != 1:
            callback_name = getattr(callback, "__qualname__", None) or repr(callback)
            raise ValueError(
                f"Event listener must accept exactly 1 parameter (EventPayload), "
                f"got {len(params)} parameters for '{callback_name}'"
            )

    def subscribe(
        self,
        event_name: str,
        callback: CallbackType,
        *,
        priority: ListenerPriority = ListenerPriority.NORMAL,
        identifier: Optional[str] = None,
        allow_duplicates: bool = False,
    ) -> str:
        """
        Subscribe `callback` to an event name or wildcard pattern.

        Returns the listener identifier (pass it to `unsubscribe()`).

        Raises
        ------
        ValueError
            If the callback does not take exactly one parameter.
        """
        self._validate_callback_signature(callback)

        listener = EventListener.from_callback(
            event_name=event_name,
            callback=callback,
            priority=priority,
            identifier=identifier,
        )

        if self._registry.add_listener(
            event_name, listener, allow_duplicates=allow_duplicates
        ):
            logger.debug(
                "EventBus: subscribed listener",
                extra={
                    "event_name": event_name,
                    "listener_id": listener.identifier,
                    "priority": listener.priority.name,
                },
            )
        else:
            logger.warning(
                "EventBus: duplicate listener prevented",
                extra={"event_name": event_name, "listener_id": listener.identifier},
            )

        return listener.identifier

    def unsubscribe(self, event_name: str, identifier: str) -> bool:
        removed = self._registry.remove_listener(event_name, identifier)
        if removed:
            logger.debug(
                "EventBus: unsubscribed listener",
                extra={"event_name": event_name, "listener_id": identifier},
            )
        return removed

    def clear(self) -> None:
        total = self._registry.clear_all()
        logger.info(
            "EventBus: cleared all listeners",
            extra={"previous_listener_count": total},
        )

    # ------------------------------------------------------------------ #
    # Publish API
    # ------------------------------------------------------------------ #

    async def publish(self, event_name: str, data: EventPayload) -> list[Any]:
        """
        Publish `data` to every listener of `event_name`.

        Returns the results of CRITICAL, HIGH and NORMAL listeners; LOW
        listeners are fire-and-forget. Listener failures never propagate.
        """
        self._published[event_name] += 1
        set_log_context(event_name=event_name)

        listeners = self._registry.listeners_for_event(event_name)
        if not listeners:
            logger.debug(
                "EventBus: no listeners for event", extra={"event_name": event_name}
            )
            return []

        logger.debug(
            "EventBus: publishing event",
            extra={
                "event_name": event_name,
                "payload_keys": sorted(data.keys()),
                "listener_count": len(listeners),
            },
        )

        return await self._scheduler.execute(
            event_name=event_name,
            payload=data,
            listeners=listeners,
            logger=logger,
            critical_timeout=self._critical_timeout,
            high_timeout=self._high_timeout,
        )

    async def drain(self) -> None:
        """Wait for outstanding fire-and-forget listeners."""
        await self._scheduler.drain()

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    def get_listener_count(self, event_name: Optional[str] = None) -> int:
        if event_name:
            return len(self._registry.listeners_for_event(event_name))
        return self._registry.get_total_listener_count()

    def get_all_events(self) -> list[str]:
        return self._registry.get_all_event_keys()

    def get_metrics_summary(self) -> dict[str, Any]:
        published = dict(self._published)
        errors = dict(self._scheduler.errors_by_event)
        total = sum(published.values())
        return {
            "total_events_published": total,
            "events_by_type": published,
            "total_errors": sum(errors.values()),
            "errors_by_event": errors,
            "total_listeners": self._registry.get_total_listener_count(),
            "background_tasks": self._scheduler.get_background_task_count(),
        }
