"""
Progress Record Service
=======================

Purpose
-------
Orchestrates daily progress records for cessation plans: validation,
ownership checks, persistence through the Record Store, streak
recomputation, and cache invalidation.

Domain
------
- create: record a day; a soft-deleted record for the same day is revived
  (same id) instead of inserting a duplicate
- update: partial update, optionally reviving a soft-deleted record
- remove: soft delete
- find_one / find_all: cache-first reads with ownership checks

Side-effect order
-----------------
validation -> persistence -> streak / badge notification -> invalidation

Notification and invalidation are best-effort. Their failures are logged
with the traceback and never fail or roll back the write.

Configuration Keys
------------------
- progress.streak.history_window : int (default 1000)
- progress.pagination.max_limit  : int (default 100)
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Callable, Optional

from src.core.logging.logger import LogContext
from src.domain.models.principal import Principal
from src.domain.models.progress_record import PlanSummary, ProgressRecordData
from src.modules.progress.schemas import (
    MAX_LIMIT,
    CreateProgressRecordInput,
    PaginatedResult,
    PaginationParams,
    ProgressRecordFilters,
    UpdateProgressRecordInput,
)
from src.modules.progress.streak import calculate_streak
from src.modules.shared.base_service import BaseService
from src.modules.shared.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)

if TYPE_CHECKING:
    from logging import Logger

    from src.core.config.manager import ConfigManager
    from src.core.event.bus import EventBus
    from src.modules.badge.service import BadgeNotifier
    from src.modules.leaderboard.service import LeaderboardStore
    from src.modules.plan.service import PlanOwnership
    from src.modules.progress.cache import ProgressRecordCache
    from src.modules.progress.invalidation import ProgressInvalidationDispatcher
    from src.modules.progress.repository import RecordStore

RESOURCE = "progress_record"
PLAN_RESOURCE = "cessation_plan"
DEFAULT_HISTORY_WINDOW = 1000


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# ProgressRecordService
# ============================================================================


class ProgressRecordService(BaseService):
    """
    Progress record orchestrator.

    Public Methods
    --------------
    - create() -> Record a day, reviving a soft-deleted record if present
    - update() -> Partial update (or reactivation)
    - remove() -> Soft delete
    - find_one() -> Single active record
    - find_all() -> Paginated, filtered listing
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
        *,
        store: RecordStore,
        plans: PlanOwnership,
        cache: ProgressRecordCache,
        dispatcher: ProgressInvalidationDispatcher,
        leaderboard: LeaderboardStore,
        badges: BadgeNotifier,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """
        Args:
            config_manager: Application configuration manager
            event_bus: Event bus for cross-module communication
            logger: Structured logger instance
            store: Record Store for progress records
            plans: Plan lookup used for ownership checks
            cache: Read-through cache for records and listings
            dispatcher: Publishes the invalidation event after writes
            leaderboard: Streak leaderboard
            badges: Streak badge notifier
            clock: Returns the current moment; injectable for tests
        """
        super().__init__(config_manager, event_bus, logger)
        self._store = store
        self._plans = plans
        self._cache = cache
        self._dispatcher = dispatcher
        self._leaderboard = leaderboard
        self._badges = badges
        self._clock = clock

    def today(self) -> date:
        return self._clock().date()

    # ========================================================================
    # PUBLIC API - Write Operations
    # ========================================================================

    async def create(
        self, data: CreateProgressRecordInput, user: Principal
    ) -> ProgressRecordData:
        """
        Record progress for a day of a plan the user owns.

        Raises:
            NotFoundError: Plan does not exist
            ForbiddenError: Plan belongs to another user
            ValidationError: record_date is in the future
            ConflictError: An active record already exists for that day
        """
        async with LogContext(user_id=user.user_id, plan_id=data.plan_id, operation="create"):
            await self._require_owned_plan(data.plan_id, user, "create progress record")
            self._reject_future_date(data.record_date)

            existing = await self._store.find_by_plan_and_date(
                data.plan_id, data.record_date, active_only=False
            )
            if existing is not None and not existing.is_deleted:
                raise ConflictError(
                    RESOURCE,
                    "Progress record for this date already exists",
                    details={"plan_id": data.plan_id, "record_date": data.record_date.isoformat()},
                )
            if existing is not None:
                self.log.info(
                    "Reactivating soft-deleted progress record",
                    extra={"record_id": existing.id, "plan_id": data.plan_id},
                )
                return await self.update(
                    existing.id,
                    UpdateProgressRecordInput.from_values(data.values()),
                    user,
                    reactivating=True,
                )

            record = await self._store.create(data)
            self.log_operation(
                "create", record_id=record.id, plan_id=record.plan_id, user_id=user.user_id
            )

            await self._refresh_streak(user.user_id, record)
            await self._invalidate(record, user.user_id)
            return record

    async def update(
        self,
        record_id: str,
        data: UpdateProgressRecordInput,
        user: Principal,
        reactivating: bool = False,
    ) -> ProgressRecordData:
        """
        Apply the provided fields to a record.

        With `reactivating=True` the record may be soft-deleted and comes
        back active with the same id. Without it, a soft-deleted record is
        treated as missing.

        Raises:
            NotFoundError: Record or plan missing, or record soft-deleted
            ForbiddenError: Plan belongs to another user
            ValidationError: New record_date is in the future
            ConflictError: New record_date is taken by another active record
        """
        async with LogContext(user_id=user.user_id, operation="update"):
            record = await self._store.find_any(record_id)
            if record is None or (record.is_deleted and not reactivating):
                raise NotFoundError(RESOURCE, record_id)

            await self._require_owned_plan(record.plan_id, user, "update progress record")

            changes = data.changes()
            new_date = changes.get("record_date")
            day_moved = new_date is not None and new_date != record.record_date
            if new_date is not None:
                self._reject_future_date(new_date)
            if day_moved:
                clash = await self._store.find_by_plan_and_date(
                    record.plan_id, new_date, active_only=True, exclude_id=record_id
                )
                if clash is not None:
                    raise ConflictError(
                        RESOURCE,
                        "Progress record for the new date already exists",
                        details={"record_id": record_id, "conflicting_id": clash.id},
                    )

            if reactivating:
                updated = await self._store.reactivate(record_id, changes)
            else:
                updated = await self._store.update(record_id, changes)
            self.log_operation(
                "reactivate" if reactivating else "update",
                record_id=record_id,
                plan_id=updated.plan_id,
                fields=sorted(changes),
            )

            if reactivating or day_moved or "cigarettes_smoked" in changes:
                await self._refresh_streak(user.user_id, updated)
            await self._invalidate(updated, user.user_id)
            return updated

    async def remove(self, record_id: str, user: Principal) -> ProgressRecordData:
        """
        Soft-delete an active record and return it in its deleted state.

        Raises:
            NotFoundError: Record missing or already soft-deleted
            ForbiddenError: Plan belongs to another user
        """
        async with LogContext(user_id=user.user_id, operation="remove"):
            record = await self._store.find_one(record_id, active_only=True)
            if record is None:
                raise NotFoundError(RESOURCE, record_id)

            await self._require_owned_plan(record.plan_id, user, "remove progress record")

            removed = await self._store.soft_delete(record_id)
            self.log_operation("remove", record_id=record_id, plan_id=removed.plan_id)

            await self._invalidate(removed, user.user_id)
            return removed

    # ========================================================================
    # PUBLIC API - Read Operations
    # ========================================================================

    async def find_one(self, record_id: str, user: Principal) -> ProgressRecordData:
        """
        Fetch one active record through the cache.

        Raises:
            NotFoundError: record missing or soft-deleted, or its plan is gone
            ForbiddenError: plan belongs to another user
        """
        async with LogContext(user_id=user.user_id, operation="find_one"):
            record = await self._cache.get_one(
                record_id, lambda: self._store.find_one(record_id, active_only=True)
            )
            if record is None or record.is_deleted:
                raise NotFoundError(RESOURCE, record_id)

            # Ownership is checked on cache hits too.
            await self._require_owned_plan(record.plan_id, user, "view progress record")
            return record

    async def find_all(
        self,
        pagination: PaginationParams,
        filters: Optional[ProgressRecordFilters],
        user: Principal,
    ) -> PaginatedResult[ProgressRecordData]:
        """
        List active records.

        Members must name one of their own plans; coaches and admins may
        list across plans.

        Raises:
            ValidationError: limit above progress.pagination.max_limit
            ForbiddenError: Member without plan_id, or plan not theirs
        """
        filters = filters or ProgressRecordFilters()
        async with LogContext(user_id=user.user_id, plan_id=filters.plan_id, operation="find_all"):
            max_limit = self.get_int_config("progress.pagination.max_limit", MAX_LIMIT, minimum=1)
            if pagination.limit > max_limit:
                raise ValidationError("limit", f"must be at most {max_limit}")

            if not user.can_view_all_plans:
                if filters.plan_id is None:
                    raise ForbiddenError(
                        "list progress records",
                        "Members must specify a plan_id",
                        user_id=user.user_id,
                    )
                plan = await self._plans.get_plan(filters.plan_id)
                if plan is None or plan.user_id != user.user_id:
                    raise ForbiddenError(
                        "list progress records",
                        "Plan does not belong to user",
                        user_id=user.user_id,
                    )

            async def load() -> PaginatedResult[ProgressRecordData]:
                rows, total = await self._store.find_all(pagination, filters)
                return PaginatedResult(
                    data=rows, total=total, page=pagination.page, limit=pagination.limit
                )

            return await self._cache.get_page(user.user_id, pagination, filters, load)

    # ========================================================================
    # PRIVATE HELPERS
    # ========================================================================

    async def _require_owned_plan(
        self, plan_id: str, user: Principal, action: str
    ) -> PlanSummary:
        plan = await self._plans.get_plan(plan_id)
        if plan is None:
            raise NotFoundError(PLAN_RESOURCE, plan_id)
        if plan.user_id != user.user_id:
            raise ForbiddenError(action, "Plan does not belong to user", user_id=user.user_id)
        return plan

    def _reject_future_date(self, record_date: date) -> None:
        if record_date > self.today():
            raise ValidationError("record_date", "cannot be in the future")

    async def _refresh_streak(self, user_id: str, record: ProgressRecordData) -> None:
        """Recompute the plan's streak and forward it; failures are logged only."""
        try:
            window = self.get_int_config(
                "progress.streak.history_window", DEFAULT_HISTORY_WINDOW, minimum=1
            )
            history = await self._store.find_history(record.plan_id, window)
            streak = calculate_streak(history, self.today())

            previous = await self._leaderboard.get_user_streak(user_id)
            if streak != (previous or 0):
                await self._leaderboard.update_user_streak(user_id, streak)
            if record.is_clean:
                await self._badges.on_streak_update(user_id, streak)

            self.log.debug(
                "Streak recomputed",
                extra={"user_id": user_id, "plan_id": record.plan_id, "streak": streak},
            )
        except Exception as exc:
            self.log_error(
                "refresh_streak", exc, user_id=user_id, plan_id=record.plan_id
            )

    async def _invalidate(self, record: ProgressRecordData, user_id: str) -> None:
        try:
            await self._dispatcher.dispatch(record.id, record.plan_id, user_id)
        except Exception as exc:
            self.log_error(
                "invalidate_cache", exc, record_id=record.id, plan_id=record.plan_id
            )
