"""
Feature modules.

- progress: daily progress records, streaks, caching and invalidation
- plan: cessation plan ownership lookups and plan-side cache invalidation
- leaderboard: streak leaderboard (Redis sorted set) and its caches
- badge: streak badge notifications
- shared: domain exceptions and base service/repository patterns
"""
