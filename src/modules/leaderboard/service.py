"""
Streak Leaderboard Service
==========================

Purpose
-------
Keeps each user's current clean-day streak in a single Redis sorted set
(``leaderboard:streak``), scored by streak length, and answers rank and
top-N queries against it.

Domain
------
- Record a user's latest streak (overwrites the previous score)
- Read a user's streak and rank
- Page through the top streaks

The sorted set is the leaderboard's source of truth, not a cache entry:
cache invalidation never touches it.

Configuration Keys
------------------
- progress.leaderboard.max_page_size : int (default 100)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Protocol

from src.core.redis.service import RedisService
from src.modules.shared.base_service import BaseService

if TYPE_CHECKING:
    from logging import Logger

    from src.core.config.manager import ConfigManager
    from src.core.event.bus import EventBus

LEADERBOARD_KEY = "leaderboard:streak"


@dataclass(frozen=True)
class StreakEntry:
    user_id: str
    streak: int
    rank: int


class LeaderboardStore(Protocol):
    async def get_user_streak(self, user_id: str) -> Optional[int]: ...

    async def update_user_streak(self, user_id: str, streak: int) -> None: ...


# ============================================================================
# StreakLeaderboardService
# ============================================================================


class StreakLeaderboardService(BaseService):
    """
    Streak ranking over a Redis sorted set.

    Public Methods
    --------------
    - update_user_streak() -> Store a user's current streak
    - get_user_streak() -> Current streak, or None if never recorded
    - get_user_rank() -> 1-based rank, or None if never recorded
    - get_top_streaks() -> Highest streaks first
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
        redis: type[RedisService] = RedisService,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self._redis = redis

    # ========================================================================
    # PUBLIC API - Write Operations
    # ========================================================================

    async def update_user_streak(self, user_id: str, streak: int) -> None:
        """
        Store `streak` as the user's score.

        Empty user ids and negative or non-integer streaks are logged and
        ignored rather than raised; callers treat leaderboard updates as
        best-effort.
        """
        if not user_id:
            self.log.warning("Ignoring streak update without user id")
            return
        if isinstance(streak, bool) or not isinstance(streak, int) or streak < 0:
            self.log.warning(
                "Ignoring invalid streak value",
                extra={"user_id": user_id, "streak": streak},
            )
            return

        await self._redis.zadd(LEADERBOARD_KEY, {user_id: float(streak)})
        self.log_operation("update_user_streak", user_id=user_id, streak=streak)

    # ========================================================================
    # PUBLIC API - Read Operations
    # ========================================================================

    async def get_user_streak(self, user_id: str) -> Optional[int]:
        score = await self._redis.zscore(LEADERBOARD_KEY, user_id)
        return int(score) if score is not None else None

    async def get_user_rank(self, user_id: str) -> Optional[int]:
        rank = await self._redis.zrevrank(LEADERBOARD_KEY, user_id)
        return rank + 1 if rank is not None else None

    async def get_top_streaks(self, limit: int = 10, offset: int = 0) -> List[StreakEntry]:
        """
        Highest streaks first.

        Args:
            limit: Entries to return (1 to progress.leaderboard.max_page_size)
            offset: Entries to skip

        Returns:
            StreakEntry list with 1-based ranks
        """
        max_page = self.get_int_config("progress.leaderboard.max_page_size", 100, minimum=1)
        self.validate_range(limit, "limit", 1, max_page)
        self.validate_non_negative_int(offset, "offset")

        rows = await self._redis.zrevrange_with_scores(
            LEADERBOARD_KEY, offset, offset + limit - 1
        )
        return [
            StreakEntry(
                user_id=member.decode() if isinstance(member, bytes) else str(member),
                streak=int(score),
                rank=offset + position + 1,
            )
            for position, (member, score) in enumerate(rows)
        ]
