"""
Plan-side cache invalidation.

Two cache namespaces are derived from a plan's progress records and must
be cleared when one of them changes:

- ``cessation-plan``: plan detail, per-user listings, global listings and
  statistics (progress feeds plan completion figures)
- ``plan-stage``: per-plan stage charts and stage statistics

Both invalidators subscribe to ``progress_record.changed``.
"""

from __future__ import annotations

from typing import Any, Dict, List

from src.core.cache.invalidation import CacheInvalidator, InvalidationReport
from src.core.cache.keys import build_one_cache_key
from src.core.event.bus import EventBus
from src.core.event.types import ListenerPriority
from src.core.logging.logger import get_logger
from src.domain.models.progress_record import PROGRESS_RECORD_CHANGED

logger = get_logger(__name__)

PLAN_PREFIX = "cessation-plan"
PLAN_STAGE_PREFIX = "plan-stage"


def plan_keys(plan_id: str) -> List[str]:
    return [build_one_cache_key(PLAN_PREFIX, plan_id)]


def plan_patterns(plan_id: str, user_id: str) -> List[str]:
    return [
        f"{PLAN_PREFIX}:one:{plan_id}*",
        f"{PLAN_PREFIX}:byUser:{user_id}*",
        f"{PLAN_PREFIX}:all:*",
        f"{PLAN_PREFIX}:stats:*",
    ]


def plan_stage_patterns(plan_id: str) -> List[str]:
    return [
        f"{PLAN_STAGE_PREFIX}:chart:{plan_id}*",
        f"{PLAN_STAGE_PREFIX}:byPlan:{plan_id}*",
        f"{PLAN_STAGE_PREFIX}:statistics:*",
    ]


def _log_incomplete(namespace: str, report: InvalidationReport, **ids: Any) -> None:
    if not report.ok:
        logger.warning(
            f"{namespace} cache invalidation incomplete",
            extra={
                **ids,
                "failed_keys": report.failed_keys,
                "failed_patterns": report.failed_patterns,
            },
        )


class PlanCacheInvalidator:
    def __init__(self, invalidator: CacheInvalidator) -> None:
        self.invalidator = invalidator

    async def on_record_changed(self, payload: Dict[str, Any]) -> InvalidationReport:
        plan_id, user_id = payload["plan_id"], payload["user_id"]
        report = await self.invalidator.invalidate(
            keys=plan_keys(plan_id), patterns=plan_patterns(plan_id, user_id)
        )
        _log_incomplete("Cessation plan", report, plan_id=plan_id, user_id=user_id)
        return report

    def register(self, event_bus: EventBus) -> str:
        return event_bus.subscribe(
            PROGRESS_RECORD_CHANGED,
            self.on_record_changed,
            priority=ListenerPriority.NORMAL,
            identifier="cessation-plan.cache-invalidator",
        )


class PlanStageCacheInvalidator:
    def __init__(self, invalidator: CacheInvalidator) -> None:
        self.invalidator = invalidator

    async def on_record_changed(self, payload: Dict[str, Any]) -> InvalidationReport:
        plan_id = payload["plan_id"]
        report = await self.invalidator.invalidate(patterns=plan_stage_patterns(plan_id))
        _log_incomplete("Plan stage", report, plan_id=plan_id)
        return report

    def register(self, event_bus: EventBus) -> str:
        return event_bus.subscribe(
            PROGRESS_RECORD_CHANGED,
            self.on_record_changed,
            priority=ListenerPriority.NORMAL,
            identifier="plan-stage.cache-invalidator",
        )
