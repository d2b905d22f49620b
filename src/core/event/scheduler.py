"""
Tiered listener execution for the EventBus.

Execution model
---------------
- CRITICAL and HIGH listeners run one at a time, in order, each under its
  own timeout.
- NORMAL listeners run concurrently via `asyncio.gather` and are awaited.
- LOW listeners are scheduled as background tasks and not awaited; the
  scheduler keeps a reference to each task until it finishes.

Every listener is isolated: an exception or timeout is logged and counted
against the event, and the remaining listeners still run. `publish()` never
raises because a listener failed.
"""

from __future__ import annotations

import asyncio
import inspect
from logging import Logger
from typing import Any, Optional

from src.core.event.types import EventListener, EventPayload, ListenerPriority


def handle_listener_error(
    *,
    logger: Logger,
    event_name: str,
    listener: EventListener,
    exc: BaseException,
    errors: dict[str, int],
) -> None:
    errors[event_name] = errors.get(event_name, 0) + 1
    logger.error(
        "EventBus listener error",
        extra={
            "event_name": event_name,
            "listener_id": listener.identifier,
            "priority": listener.priority.name,
            "error": str(exc),
            "error_type": type(exc).__name__,
        },
        exc_info=exc,
    )


class EventScheduler:
    def __init__(self) -> None:
        self._background_tasks: set[asyncio.Task[Any]] = set()
        self.errors_by_event: dict[str, int] = {}

    async def execute(
        self,
        *,
        event_name: str,
        payload: EventPayload,
        listeners: list[EventListener],
        logger: Logger,
        critical_timeout: Optional[float],
        high_timeout: Optional[float],
    ) -> list[Any]:
        """
        Run `listeners` (already sorted by priority) against `payload`.

        Returns results from CRITICAL, HIGH and NORMAL listeners in execution
        order; failed listeners contribute `None`. LOW listeners contribute
        nothing.
        """
        by_tier: dict[ListenerPriority, list[EventListener]] = {
            tier: [] for tier in ListenerPriority
        }
        for listener in listeners:
            by_tier[listener.priority].append(listener)

        results: list[Any] = []

        for tier, timeout in (
            (ListenerPriority.CRITICAL, critical_timeout),
            (ListenerPriority.HIGH, high_timeout),
        ):
            for listener in by_tier[tier]:
                results.append(
                    await self._run_with_timeout(
                        listener=listener,
                        event_name=event_name,
                        payload=payload,
                        logger=logger,
                        timeout=timeout,
                    )
                )

        normal = by_tier[ListenerPriority.NORMAL]
        if normal:
            results.extend(
                await asyncio.gather(
                    *[
                        self._run_listener(
                            listener=lst,
                            event_name=event_name,
                            payload=payload,
                            logger=logger,
                        )
                        for lst in normal
                    ]
                )
            )

        loop = asyncio.get_running_loop()
        for listener in by_tier[ListenerPriority.LOW]:
            task = loop.create_task(
                self._run_listener(
                    listener=listener,
                    event_name=event_name,
                    payload=payload,
                    logger=logger,
                ),
                name=f"eventbus-low-{event_name}-{listener.identifier}",
            )
            self._background_tasks.add(task)
            task.add_done_callback(self._background_tasks.discard)

        return results

    async def _run_with_timeout(
        self,
        *,
        listener: EventListener,
        event_name: str,
        payload: EventPayload,
        logger: Logger,
        timeout: Optional[float],
    ) -> Any:
        coro = self._run_listener(
            listener=listener, event_name=event_name, payload=payload, logger=logger
        )
        if timeout is None or timeout <= 0:
            return await coro

        try:
            return await asyncio.wait_for(coro, timeout=timeout)
        except asyncio.TimeoutError as exc:
            logger.error(
                "EventBus listener timeout",
                extra={
                    "event_name": event_name,
                    "listener_id": listener.identifier,
                    "timeout_seconds": timeout,
                },
            )
            handle_listener_error(
                logger=logger,
                event_name=event_name,
                listener=listener,
                exc=exc,
                errors=self.errors_by_event,
            )
            return None

    async def _run_listener(
        self,
        *,
        listener: EventListener,
        event_name: str,
        payload: EventPayload,
        logger: Logger,
    ) -> Any:
        try:
            logger.debug(
                "EventBus: executing listener",
                extra={
                    "event_name": event_name,
                    "listener_id": listener.identifier,
                    "priority": listener.priority.name,
                },
            )
            if inspect.iscoroutinefunction(listener.callback):
                return await listener.callback(payload)

            # Sync callbacks go to the default executor.
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(None, listener.callback, payload)

        except Exception as exc:
            handle_listener_error(
                logger=logger,
                event_name=event_name,
                listener=listener,
                exc=exc,
                errors=self.errors_by_event,
            )
            return None

    def get_background_task_count(self) -> int:
        return len(self._background_tasks)

    async def drain(self) -> None:
        """Wait for all in-flight LOW-tier tasks (shutdown and tests)."""
        while self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)
