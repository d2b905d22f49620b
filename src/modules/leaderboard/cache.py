"""
Leaderboard-side cache invalidation.

Clears cached leaderboard and streak views for the user whose progress
changed. The ``leaderboard:streak`` sorted set is deliberately outside
these patterns.
"""

from __future__ import annotations

from typing import Any, Dict, List

from src.core.cache.invalidation import CacheInvalidator, InvalidationReport
from src.core.event.bus import EventBus
from src.core.event.types import ListenerPriority
from src.core.logging.logger import get_logger
from src.domain.models.progress_record import PROGRESS_RECORD_CHANGED

logger = get_logger(__name__)


def leaderboard_patterns(user_id: str) -> List[str]:
    return [f"leaderboard:*:{user_id}*", f"streak:*:{user_id}*"]


class LeaderboardCacheInvalidator:
    def __init__(self, invalidator: CacheInvalidator) -> None:
        self.invalidator = invalidator

    async def on_record_changed(self, payload: Dict[str, Any]) -> InvalidationReport:
        user_id = payload["user_id"]
        report = await self.invalidator.invalidate(patterns=leaderboard_patterns(user_id))
        if not report.ok:
            logger.warning(
                "Leaderboard cache invalidation incomplete",
                extra={"user_id": user_id, "failed_patterns": report.failed_patterns},
            )
        return report

    def register(self, event_bus: EventBus) -> str:
        return event_bus.subscribe(
            PROGRESS_RECORD_CHANGED,
            self.on_record_changed,
            priority=ListenerPriority.NORMAL,
            identifier="leaderboard.cache-invalidator",
        )
