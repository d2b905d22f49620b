"""
Leaderboard Module
==================

Domain: clean-day streak rankings

Services:
- StreakLeaderboardService: Redis sorted-set streak leaderboard
- LeaderboardCacheInvalidator: clears cached leaderboard views on progress changes
"""

from .cache import LeaderboardCacheInvalidator
from .service import (
    LEADERBOARD_KEY,
    LeaderboardStore,
    StreakEntry,
    StreakLeaderboardService,
)

__all__ = [
    "LEADERBOARD_KEY",
    "LeaderboardCacheInvalidator",
    "StreakEntry",
    "LeaderboardStore",
    "StreakLeaderboardService",
]
