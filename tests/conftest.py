"""
Pytest Configuration and Fixtures
=================================

Purpose
-------
Shared fixtures for the progress tracking test suite.

- Unit tests run the real service, cache layer and event bus against
  in-memory fakes of the Record Store, plan lookups, leaderboard and cache
  store.
- Integration tests use testcontainers (PostgreSQL, Redis) and are skipped
  when Docker is not reachable.
"""

from __future__ import annotations

import fnmatch
import os
import uuid
from dataclasses import replace
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, AsyncGenerator, Dict, Generator, List, Optional, Sequence, Tuple

import pytest
import pytest_asyncio

from src.core.cache import CacheInvalidator, CacheMetrics, ReadThroughCache
from src.core.config.manager import ConfigManager
from src.core.event.bus import EventBus
from src.core.exceptions import CacheError
from src.core.logging.logger import get_logger
from src.domain.models.principal import Principal, UserRole
from src.domain.models.progress_record import PlanSummary, ProgressRecordData
from src.modules.leaderboard.cache import LeaderboardCacheInvalidator
from src.modules.plan.cache import PlanCacheInvalidator, PlanStageCacheInvalidator
from src.modules.progress.cache import ProgressRecordCache
from src.modules.progress.invalidation import (
    ProgressInvalidationDispatcher,
    ProgressRecordCacheInvalidator,
)
from src.modules.progress.schemas import (
    CreateProgressRecordInput,
    PaginationParams,
    ProgressRecordFilters,
)
from src.modules.progress.service import ProgressRecordService
from src.modules.shared.exceptions import ConflictError, NotFoundError

logger = get_logger(__name__)

# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


def pytest_configure(config):
    os.environ["ENVIRONMENT"] = "testing"
    os.environ.setdefault("LOG_LEVEL", "DEBUG")


@pytest.fixture(autouse=True)
def reset_config_overrides() -> Generator[None, None, None]:
    yield
    ConfigManager.clear_overrides()


# ============================================================================
# IN-MEMORY FAKES
# ============================================================================


class FakeClock:
    """Callable clock; `set_today()` moves it to noon UTC of a given day."""

    def __init__(self, today: date) -> None:
        self.now = datetime.combine(today, time(12, 0), tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def set_today(self, today: date) -> None:
        self.now = datetime.combine(today, time(12, 0), tzinfo=timezone.utc)


class FakePlanOwnership:
    def __init__(self) -> None:
        self.plans: Dict[str, PlanSummary] = {}

    def add_plan(self, plan_id: str, user_id: str, status: str = "ACTIVE") -> PlanSummary:
        plan = PlanSummary(id=plan_id, user_id=user_id, status=status)
        self.plans[plan_id] = plan
        return plan

    async def get_plan(self, plan_id: str) -> Optional[PlanSummary]:
        return self.plans.get(plan_id)


class InMemoryRecordStore:
    """
    Record Store over a dict, with the same uniqueness rule as the
    partial unique index: one active record per (plan_id, record_date).
    """

    def __init__(self, plans: FakePlanOwnership) -> None:
        self.plans = plans
        self.records: Dict[str, ProgressRecordData] = {}
        self.writes: List[Tuple[str, str]] = []
        self._tick = 0

    def _timestamp(self) -> datetime:
        self._tick += 1
        return datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(seconds=self._tick)

    def _check_unique(self, plan_id: str, day: date, exclude_id: Optional[str]) -> None:
        for record in self.records.values():
            if (
                record.plan_id == plan_id
                and record.record_date == day
                and not record.is_deleted
                and record.id != exclude_id
            ):
                raise ConflictError(
                    "progress_record", "Progress record for this date already exists"
                )

    async def create(self, data: CreateProgressRecordInput) -> ProgressRecordData:
        self._check_unique(data.plan_id, data.record_date, None)
        stamp = self._timestamp()
        record = ProgressRecordData(
            id=str(uuid.uuid4()),
            plan_id=data.plan_id,
            is_deleted=False,
            created_at=stamp,
            updated_at=stamp,
            plan=self.plans.plans.get(data.plan_id),
            **data.values(),
        )
        self.records[record.id] = record
        self.writes.append(("create", record.id))
        return record

    async def find_one(
        self, record_id: str, active_only: bool = True
    ) -> Optional[ProgressRecordData]:
        record = self.records.get(record_id)
        if record is None or (active_only and record.is_deleted):
            return None
        return record

    async def find_any(self, record_id: str) -> Optional[ProgressRecordData]:
        return self.records.get(record_id)

    async def find_by_plan_and_date(
        self,
        plan_id: str,
        day: date,
        active_only: bool = False,
        exclude_id: Optional[str] = None,
    ) -> Optional[ProgressRecordData]:
        matches = [
            record
            for record in self.records.values()
            if record.plan_id == plan_id
            and record.record_date == day
            and record.id != exclude_id
            and not (active_only and record.is_deleted)
        ]
        matches.sort(key=lambda r: (r.is_deleted, -r.updated_at.timestamp()))
        return matches[0] if matches else None

    async def find_all(
        self, pagination: PaginationParams, filters: ProgressRecordFilters
    ) -> Tuple[List[ProgressRecordData], int]:
        rows = [
            record
            for record in self.records.values()
            if not record.is_deleted
            and (filters.plan_id is None or record.plan_id == filters.plan_id)
            and (filters.start_date is None or record.record_date >= filters.start_date)
            and (filters.end_date is None or record.record_date <= filters.end_date)
        ]
        rows.sort(
            key=lambda r: (getattr(r, pagination.order_by) is None, getattr(r, pagination.order_by)),
            reverse=pagination.sort_order == "desc",
        )
        offset = pagination.offset
        return rows[offset : offset + pagination.limit], len(rows)

    async def find_history(self, plan_id: str, limit: int) -> List[ProgressRecordData]:
        rows = [r for r in self.records.values() if r.plan_id == plan_id and not r.is_deleted]
        rows.sort(key=lambda r: r.record_date, reverse=True)
        return rows[:limit]

    def _apply(
        self, record_id: str, changes: Dict[str, Any], is_deleted: Optional[bool]
    ) -> ProgressRecordData:
        record = self.records.get(record_id)
        if record is None:
            raise NotFoundError("progress_record", record_id)
        updated = replace(record, **changes, updated_at=self._timestamp())
        if is_deleted is not None:
            updated = replace(updated, is_deleted=is_deleted)
        if not updated.is_deleted:
            self._check_unique(updated.plan_id, updated.record_date, record_id)
        self.records[record_id] = updated
        return updated

    async def update(self, record_id: str, changes: Dict[str, Any]) -> ProgressRecordData:
        self.writes.append(("update", record_id))
        return self._apply(record_id, changes, None)

    async def reactivate(self, record_id: str, changes: Dict[str, Any]) -> ProgressRecordData:
        self.writes.append(("reactivate", record_id))
        return self._apply(record_id, changes, False)

    async def soft_delete(self, record_id: str) -> ProgressRecordData:
        self.writes.append(("soft_delete", record_id))
        return self._apply(record_id, {}, True)


class FakeCacheStore:
    """
    Dict-backed cache store that records every delete and scan.

    Operations named in `failing` raise `CacheError`.
    """

    def __init__(self) -> None:
        self.data: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}
        self.deleted: List[str] = []
        self.scanned: List[str] = []
        self.failing: set[str] = set()

    def _maybe_fail(self, operation: str, key: str) -> None:
        if operation in self.failing:
            raise CacheError(operation, key)

    async def get(self, key: str) -> Optional[str]:
        self._maybe_fail("get", key)
        return self.data.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._maybe_fail("set", key)
        self.data[key] = value
        self.ttls[key] = ttl_seconds

    async def delete(self, keys: Sequence[str]) -> int:
        self._maybe_fail("delete", ",".join(keys))
        removed = 0
        for key in keys:
            self.deleted.append(key)
            if self.data.pop(key, None) is not None:
                removed += 1
        return removed

    async def scan_keys(self, pattern: str) -> list[str]:
        self._maybe_fail("scan", pattern)
        self.scanned.append(pattern)
        return [key for key in self.data if fnmatch.fnmatchcase(key, pattern)]


class FakeLeaderboard:
    def __init__(self) -> None:
        self.streaks: Dict[str, int] = {}
        self.updates: List[Tuple[str, int]] = []
        self.fail = False

    async def get_user_streak(self, user_id: str) -> Optional[int]:
        if self.fail:
            raise RuntimeError("leaderboard unavailable")
        return self.streaks.get(user_id)

    async def update_user_streak(self, user_id: str, streak: int) -> None:
        self.streaks[user_id] = streak
        self.updates.append((user_id, streak))


class FakeBadgeNotifier:
    def __init__(self) -> None:
        self.calls: List[Tuple[str, int]] = []

    async def on_streak_update(self, user_id: str, streak: int) -> None:
        self.calls.append((user_id, streak))


# ============================================================================
# UNIT FIXTURES
# ============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(date(2024, 1, 2))


@pytest.fixture
def plans() -> FakePlanOwnership:
    registry = FakePlanOwnership()
    registry.add_plan("plan-1", "user-1")
    registry.add_plan("plan-2", "user-2")
    return registry


@pytest.fixture
def record_store(plans: FakePlanOwnership) -> InMemoryRecordStore:
    return InMemoryRecordStore(plans)


@pytest.fixture
def cache_store() -> FakeCacheStore:
    return FakeCacheStore()


@pytest.fixture
def cache_metrics() -> CacheMetrics:
    return CacheMetrics()


@pytest.fixture
def leaderboard() -> FakeLeaderboard:
    return FakeLeaderboard()


@pytest.fixture
def badges() -> FakeBadgeNotifier:
    return FakeBadgeNotifier()


@pytest_asyncio.fixture
async def event_bus() -> AsyncGenerator[EventBus, None]:
    bus = EventBus()
    yield bus
    await bus.drain()


@pytest.fixture
def register_invalidators(event_bus: EventBus, cache_store: FakeCacheStore, cache_metrics: CacheMetrics):
    invalidator = CacheInvalidator(cache_store, cache_metrics)
    for cache_invalidator in (
        ProgressRecordCacheInvalidator(invalidator),
        PlanCacheInvalidator(invalidator),
        PlanStageCacheInvalidator(invalidator),
        LeaderboardCacheInvalidator(invalidator),
    ):
        cache_invalidator.register(event_bus)
    return invalidator


@pytest.fixture
def service(
    event_bus: EventBus,
    register_invalidators: CacheInvalidator,
    record_store: InMemoryRecordStore,
    plans: FakePlanOwnership,
    cache_store: FakeCacheStore,
    cache_metrics: CacheMetrics,
    leaderboard: FakeLeaderboard,
    badges: FakeBadgeNotifier,
    clock: FakeClock,
) -> ProgressRecordService:
    return ProgressRecordService(
        config_manager=ConfigManager,
        event_bus=event_bus,
        logger=get_logger("tests.progress_service"),
        store=record_store,
        plans=plans,
        cache=ProgressRecordCache(ReadThroughCache(cache_store, cache_metrics)),
        dispatcher=ProgressInvalidationDispatcher(event_bus),
        leaderboard=leaderboard,
        badges=badges,
        clock=clock,
    )


@pytest.fixture
def member() -> Principal:
    return Principal(user_id="user-1", role=UserRole.MEMBER)


@pytest.fixture
def other_member() -> Principal:
    return Principal(user_id="user-2", role=UserRole.MEMBER)


@pytest.fixture
def coach() -> Principal:
    return Principal(user_id="coach-1", role=UserRole.COACH)


# ============================================================================
# TESTCONTAINERS FIXTURES (Integration Tests)
# ============================================================================


@pytest.fixture(scope="session")
def postgres_container():
    """PostgreSQL testcontainer; skips the test when Docker is unavailable."""
    from testcontainers.postgres import PostgresContainer

    try:
        container = PostgresContainer(image="postgres:16-alpine", driver="asyncpg")
        container.start()
    except Exception as exc:
        pytest.skip(f"Docker not available for PostgreSQL container: {exc}")

    logger.info("PostgreSQL testcontainer started")
    yield container
    container.stop()


@pytest.fixture(scope="session")
def redis_container():
    """Redis testcontainer; skips the test when Docker is unavailable."""
    from testcontainers.redis import RedisContainer

    try:
        container = RedisContainer(image="redis:7-alpine")
        container.start()
    except Exception as exc:
        pytest.skip(f"Docker not available for Redis container: {exc}")

    logger.info("Redis testcontainer started")
    yield container
    container.stop()
