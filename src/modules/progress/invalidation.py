"""
Invalidation cascade for progress record mutations.

Purpose
-------
After every successful create, update or remove, the service calls
`ProgressInvalidationDispatcher.dispatch()`, which publishes one
``progress_record.changed`` event carrying the record, plan and user ids.
Each domain that caches data derived from progress records subscribes its
own invalidator:

- progress-record (this module): the record's own key plus listings
- cessation-plan and plan-stage: `src.modules.plan.cache`
- leaderboard and streak: `src.modules.leaderboard.cache`

No invalidator knows another domain's key namespace. Each one clears its
keys and patterns independently through `CacheInvalidator`, and the event
bus isolates one invalidator's failure from the others.
"""

from __future__ import annotations

from typing import Any, Dict

from src.core.cache.invalidation import CacheInvalidator, InvalidationReport
from src.core.event.bus import EventBus
from src.core.event.types import ListenerPriority
from src.core.logging.logger import get_logger
from src.domain.models.base import DomainEvent
from src.domain.models.progress_record import PROGRESS_RECORD_CHANGED
from src.modules.progress import cache as progress_cache

logger = get_logger(__name__)


def progress_record_changed(record_id: str, plan_id: str, user_id: str) -> DomainEvent:
    return DomainEvent(
        event_name=PROGRESS_RECORD_CHANGED,
        payload={"record_id": record_id, "plan_id": plan_id, "user_id": user_id},
    )


class ProgressInvalidationDispatcher:
    def __init__(self, event_bus: EventBus) -> None:
        self.event_bus = event_bus

    async def dispatch(self, record_id: str, plan_id: str, user_id: str) -> None:
        event = progress_record_changed(record_id, plan_id, user_id)
        logger.debug(
            "Dispatching progress record invalidation",
            extra={"record_id": record_id, "plan_id": plan_id, "user_id": user_id},
        )
        await self.event_bus.publish(event.event_name, event.to_bus_payload())


class ProgressRecordCacheInvalidator:
    """Clears the progress-record namespace when a record changes."""

    def __init__(self, invalidator: CacheInvalidator) -> None:
        self.invalidator = invalidator

    async def invalidate(self, record_id: str, plan_id: str, user_id: str) -> InvalidationReport:
        report = await self.invalidator.invalidate(
            keys=progress_cache.own_keys(record_id),
            patterns=progress_cache.own_patterns(plan_id, user_id),
        )
        if not report.ok:
            logger.warning(
                "Progress record cache invalidation incomplete",
                extra={
                    "record_id": record_id,
                    "plan_id": plan_id,
                    "user_id": user_id,
                    "failed_keys": report.failed_keys,
                    "failed_patterns": report.failed_patterns,
                },
            )
        return report

    async def on_record_changed(self, payload: Dict[str, Any]) -> InvalidationReport:
        return await self.invalidate(
            payload["record_id"], payload["plan_id"], payload["user_id"]
        )

    def register(self, event_bus: EventBus) -> str:
        return event_bus.subscribe(
            PROGRESS_RECORD_CHANGED,
            self.on_record_changed,
            priority=ListenerPriority.NORMAL,
            identifier="progress-record.cache-invalidator",
        )
