"""
Badge module: streak badge notifications.
"""

from .service import (
    BADGE_STREAK_UPDATED,
    DEFAULT_STREAK_MILESTONES,
    BadgeNotifier,
    StreakBadgeNotifier,
)

__all__ = [
    "BADGE_STREAK_UPDATED",
    "DEFAULT_STREAK_MILESTONES",
    "BadgeNotifier",
    "StreakBadgeNotifier",
]
