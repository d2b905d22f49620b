"""
Streak badge notifications.

`StreakBadgeNotifier` turns a new streak value into a
``badge.streak_updated`` event. Badge awarding itself lives with whatever
subscribes to that event; this module only announces the streak and
whether it reached a configured milestone.

Configuration Keys
------------------
- progress.badges.streak_milestones : list[int]
"""

from __future__ import annotations

from typing import TYPE_CHECKING, FrozenSet, Optional, Protocol

from src.core.event.types import CallbackType, ListenerPriority
from src.modules.shared.base_service import BaseService

if TYPE_CHECKING:
    from logging import Logger

    from src.core.config.manager import ConfigManager
    from src.core.event.bus import EventBus

BADGE_STREAK_UPDATED = "badge.streak_updated"
DEFAULT_STREAK_MILESTONES = (1, 3, 7, 14, 30, 60, 90, 180, 365)


class BadgeNotifier(Protocol):
    async def on_streak_update(self, user_id: str, streak: int) -> None: ...


class StreakBadgeNotifier(BaseService):
    def __init__(
        self,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)

    @property
    def milestones(self) -> FrozenSet[int]:
        configured = self.get_config(
            "progress.badges.streak_milestones", list(DEFAULT_STREAK_MILESTONES)
        )
        try:
            return frozenset(int(value) for value in configured)
        except (TypeError, ValueError):
            self.log.warning(
                "Invalid streak milestones config, using defaults",
                extra={"config_key": "progress.badges.streak_milestones"},
            )
            return frozenset(DEFAULT_STREAK_MILESTONES)

    async def on_streak_update(self, user_id: str, streak: int) -> None:
        """Publish the streak; listeners run at LOW priority and never block the caller."""
        is_milestone = streak in self.milestones
        await self.emit_event(
            BADGE_STREAK_UPDATED,
            {"user_id": user_id, "streak": streak, "is_milestone": is_milestone},
        )
        if is_milestone:
            self.log_operation("streak_milestone", user_id=user_id, streak=streak)

    def subscribe(self, callback: CallbackType, identifier: Optional[str] = None) -> str:
        """Register a badge listener; it runs fire-and-forget at LOW priority."""
        return self._events.subscribe(
            BADGE_STREAK_UPDATED,
            callback,
            priority=ListenerPriority.LOW,
            identifier=identifier,
        )
