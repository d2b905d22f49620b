"""
Unit tests for ProgressRecordService.

The service runs for real against in-memory fakes (see conftest.py), with
the real read-through cache, event bus and cache invalidators wired in.
Today is 2024-01-02 unless a test moves the clock.
"""

from datetime import date, datetime

import pytest

from src.core.config.manager import ConfigManager
from src.domain.models.progress_record import RecordStatus
from src.modules.progress.schemas import (
    CreateProgressRecordInput,
    PaginationParams,
    ProgressRecordFilters,
    UpdateProgressRecordInput,
)
from src.modules.shared.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)

JAN_1 = date(2024, 1, 1)
JAN_2 = date(2024, 1, 2)
JAN_3 = date(2024, 1, 3)


def new_record(day: date, plan_id: str = "plan-1", **fields) -> CreateProgressRecordInput:
    return CreateProgressRecordInput(plan_id=plan_id, record_date=day, **fields)


# ============================================================================
# CREATE
# ============================================================================


@pytest.mark.unit
class TestCreate:
    """create(): ownership, date rules, uniqueness and reactivation."""

    async def test_creates_active_record(self, service, member, record_store):
        record = await service.create(new_record(JAN_1, health_score=70, notes="ok"), member)

        assert record.status is RecordStatus.ACTIVE
        assert record.owner_id == "user-1"
        assert record.health_score == 70
        assert record_store.records[record.id] == record

    async def test_unknown_plan_is_not_found(self, service, member, record_store):
        with pytest.raises(NotFoundError):
            await service.create(new_record(JAN_1, plan_id="missing"), member)
        assert record_store.writes == []

    async def test_other_users_plan_is_forbidden(self, service, other_member, record_store):
        with pytest.raises(ForbiddenError) as exc_info:
            await service.create(new_record(JAN_1), other_member)
        assert exc_info.value.STATUS_CODE == 403
        assert record_store.writes == []

    async def test_future_date_rejected_and_nothing_persisted(self, service, member, record_store):
        with pytest.raises(ValidationError) as exc_info:
            await service.create(new_record(JAN_3), member)
        assert exc_info.value.field == "record_date"
        assert record_store.records == {}

    async def test_today_is_allowed(self, service, member):
        record = await service.create(new_record(JAN_2), member)
        assert record.record_date == JAN_2

    async def test_active_duplicate_conflicts(self, service, member, record_store):
        await service.create(new_record(JAN_1), member)

        with pytest.raises(ConflictError):
            await service.create(new_record(JAN_1, cigarettes_smoked=3), member)
        assert len(record_store.records) == 1

    async def test_soft_deleted_day_is_reactivated(self, service, member, record_store):
        original = await service.create(new_record(JAN_1, cigarettes_smoked=4, notes="rough"), member)
        await service.remove(original.id, member)

        revived = await service.create(new_record(JAN_1, cigarettes_smoked=0), member)

        assert revived.id == original.id
        assert revived.status is RecordStatus.ACTIVE
        assert revived.cigarettes_smoked == 0
        assert revived.notes is None
        assert len(record_store.records) == 1
        assert ("reactivate", original.id) in record_store.writes

    async def test_clean_day_updates_leaderboard_and_badges(self, service, member, leaderboard, badges):
        await service.create(new_record(JAN_1), member)

        assert leaderboard.streaks["user-1"] == 1
        assert badges.calls == [("user-1", 1)]

    async def test_smoking_day_resets_streak_without_badge(self, service, member, leaderboard, badges):
        await service.create(new_record(JAN_1), member)
        await service.create(new_record(JAN_2, cigarettes_smoked=5), member)

        assert leaderboard.updates == [("user-1", 1), ("user-1", 0)]
        assert badges.calls == [("user-1", 1)]

    async def test_unchanged_streak_is_not_rewritten(self, service, member, leaderboard):
        leaderboard.streaks["user-1"] = 1
        await service.create(new_record(JAN_1), member)
        assert leaderboard.updates == []

    async def test_leaderboard_failure_does_not_fail_create(self, service, member, leaderboard, record_store):
        leaderboard.fail = True

        record = await service.create(new_record(JAN_1), member)

        assert record.id in record_store.records

    async def test_history_window_is_configurable(self, service, member, leaderboard):
        ConfigManager.set_override("progress.streak.history_window", 1)
        await service.create(new_record(JAN_1), member)
        await service.create(new_record(JAN_2), member)
        assert leaderboard.streaks["user-1"] == 1


# ============================================================================
# UPDATE
# ============================================================================


@pytest.mark.unit
class TestUpdate:
    """update(): partial changes, date moves and the reactivation flag."""

    async def test_updates_provided_fields_only(self, service, member):
        record = await service.create(new_record(JAN_1, health_score=50, notes="keep"), member)

        updated = await service.update(record.id, UpdateProgressRecordInput(health_score=80), member)

        assert updated.health_score == 80
        assert updated.notes == "keep"
        assert updated.id == record.id

    async def test_cigarette_change_recomputes_streak(self, service, member, leaderboard):
        record = await service.create(new_record(JAN_1), member)

        await service.update(record.id, UpdateProgressRecordInput(cigarettes_smoked=2), member)

        assert leaderboard.streaks["user-1"] == 0

    async def test_notes_change_skips_streak(self, service, member, badges):
        record = await service.create(new_record(JAN_1), member)

        await service.update(record.id, UpdateProgressRecordInput(notes="later"), member)

        assert badges.calls == [("user-1", 1)]

    async def test_moving_onto_occupied_day_conflicts(self, service, member):
        await service.create(new_record(JAN_1), member)
        second = await service.create(new_record(JAN_2), member)

        with pytest.raises(ConflictError):
            await service.update(second.id, UpdateProgressRecordInput(record_date=JAN_1), member)

    async def test_moving_onto_soft_deleted_day_is_allowed(self, service, member):
        first = await service.create(new_record(JAN_1), member)
        second = await service.create(new_record(JAN_2), member)
        await service.remove(first.id, member)

        moved = await service.update(second.id, UpdateProgressRecordInput(record_date=JAN_1), member)

        assert moved.record_date == JAN_1

    async def test_moving_into_future_rejected(self, service, member):
        record = await service.create(new_record(JAN_1), member)

        with pytest.raises(ValidationError):
            await service.update(record.id, UpdateProgressRecordInput(record_date=JAN_3), member)

    async def test_soft_deleted_record_is_not_found(self, service, member):
        record = await service.create(new_record(JAN_1), member)
        await service.remove(record.id, member)

        with pytest.raises(NotFoundError):
            await service.update(record.id, UpdateProgressRecordInput(notes="x"), member)

    async def test_missing_record_is_not_found(self, service, member):
        with pytest.raises(NotFoundError):
            await service.update("nope", UpdateProgressRecordInput(notes="x"), member)

    async def test_other_user_is_forbidden(self, service, member, other_member):
        record = await service.create(new_record(JAN_1), member)

        with pytest.raises(ForbiddenError):
            await service.update(record.id, UpdateProgressRecordInput(notes="x"), other_member)

    async def test_reactivating_flag_revives_record(self, service, member):
        record = await service.create(new_record(JAN_1), member)
        await service.remove(record.id, member)

        revived = await service.update(
            record.id, UpdateProgressRecordInput(cigarettes_smoked=1), member, reactivating=True
        )

        assert revived.is_deleted is False
        assert revived.cigarettes_smoked == 1


# ============================================================================
# REMOVE
# ============================================================================


@pytest.mark.unit
class TestRemove:
    """remove(): soft delete of active records."""

    async def test_returns_soft_deleted_record(self, service, member, record_store):
        record = await service.create(new_record(JAN_1), member)

        removed = await service.remove(record.id, member)

        assert removed.status is RecordStatus.DELETED
        assert record_store.records[record.id].is_deleted is True

    async def test_removing_twice_is_not_found(self, service, member):
        record = await service.create(new_record(JAN_1), member)
        await service.remove(record.id, member)

        with pytest.raises(NotFoundError):
            await service.remove(record.id, member)

    async def test_other_user_is_forbidden(self, service, member, other_member):
        record = await service.create(new_record(JAN_1), member)

        with pytest.raises(ForbiddenError):
            await service.remove(record.id, other_member)


# ============================================================================
# READS
# ============================================================================


@pytest.mark.unit
class TestFindOne:
    """find_one(): cache-first with ownership checks."""

    async def test_second_read_is_a_cache_hit(self, service, member, cache_metrics):
        record = await service.create(new_record(JAN_1), member)

        first = await service.find_one(record.id, member)
        second = await service.find_one(record.id, member)

        assert first == second == record
        assert cache_metrics.hits == 1

    async def test_cached_record_has_real_dates(self, service, member):
        record = await service.create(new_record(JAN_1), member)
        await service.find_one(record.id, member)

        cached = await service.find_one(record.id, member)

        assert type(cached.record_date) is date
        assert isinstance(cached.created_at, datetime)
        assert cached.plan is not None and cached.plan.user_id == "user-1"

    async def test_ownership_checked_on_cache_hit(self, service, member, other_member):
        record = await service.create(new_record(JAN_1), member)
        await service.find_one(record.id, member)

        with pytest.raises(ForbiddenError):
            await service.find_one(record.id, other_member)

    async def test_unparsable_cache_ttl_does_not_fail_read(self, service, member, cache_store):
        record = await service.create(new_record(JAN_1), member)
        ConfigManager.set_override("progress.cache.ttl_seconds", "five")

        found = await service.find_one(record.id, member)

        assert found == record
        assert cache_store.ttls[f"progress-record:one:{record.id}"] == 300

    async def test_soft_deleted_is_not_found(self, service, member):
        record = await service.create(new_record(JAN_1), member)
        await service.find_one(record.id, member)
        await service.remove(record.id, member)

        with pytest.raises(NotFoundError):
            await service.find_one(record.id, member)

    async def test_update_is_visible_after_cached_read(self, service, member):
        record = await service.create(new_record(JAN_1, notes="before"), member)
        await service.find_one(record.id, member)

        await service.update(record.id, UpdateProgressRecordInput(notes="after"), member)

        assert (await service.find_one(record.id, member)).notes == "after"

    async def test_cache_outage_falls_back_to_store(self, service, member, cache_store):
        record = await service.create(new_record(JAN_1), member)
        cache_store.failing = {"get", "set"}

        assert (await service.find_one(record.id, member)).id == record.id


@pytest.mark.unit
class TestFindAll:
    """find_all(): role rules, filters and cached listings."""

    async def test_member_must_name_a_plan(self, service, member):
        with pytest.raises(ForbiddenError):
            await service.find_all(PaginationParams(), ProgressRecordFilters(), member)

    async def test_member_cannot_list_other_plan(self, service, member):
        with pytest.raises(ForbiddenError):
            await service.find_all(
                PaginationParams(), ProgressRecordFilters(plan_id="plan-2"), member
            )

    async def test_member_lists_own_plan(self, service, member):
        for day in (JAN_1, JAN_2):
            await service.create(new_record(day), member)

        page = await service.find_all(
            PaginationParams(limit=1), ProgressRecordFilters(plan_id="plan-1"), member
        )

        assert page.total == 2
        assert len(page.data) == 1
        assert page.has_next is True

    async def test_coach_lists_across_plans(self, service, member, other_member, coach):
        await service.create(new_record(JAN_1), member)
        await service.create(new_record(JAN_1, plan_id="plan-2"), other_member)

        page = await service.find_all(PaginationParams(), None, coach)

        assert page.total == 2
        assert {r.plan_id for r in page.data} == {"plan-1", "plan-2"}

    async def test_end_date_is_inclusive(self, service, member):
        for day in (JAN_1, JAN_2):
            await service.create(new_record(day), member)

        page = await service.find_all(
            PaginationParams(),
            ProgressRecordFilters(plan_id="plan-1", start_date=JAN_1, end_date=JAN_1),
            member,
        )

        assert [r.record_date for r in page.data] == [JAN_1]

    async def test_limit_above_configured_max_rejected(self, service, member):
        ConfigManager.set_override("progress.pagination.max_limit", 5)

        with pytest.raises(ValidationError):
            await service.find_all(
                PaginationParams(limit=10), ProgressRecordFilters(plan_id="plan-1"), member
            )

    async def test_default_max_limit_is_100(self, service, member):
        with pytest.raises(ValidationError):
            await service.find_all(
                PaginationParams(limit=101), ProgressRecordFilters(plan_id="plan-1"), member
            )

    async def test_configured_max_limit_can_be_raised(self, service, member):
        ConfigManager.set_override("progress.pagination.max_limit", 200)
        await service.create(new_record(JAN_1), member)

        page = await service.find_all(
            PaginationParams(limit=150), ProgressRecordFilters(plan_id="plan-1"), member
        )

        assert page.limit == 150
        assert page.total == 1

    async def test_listing_refreshes_after_create(self, service, member, cache_metrics):
        filters = ProgressRecordFilters(plan_id="plan-1")
        await service.create(new_record(JAN_1), member)
        assert (await service.find_all(PaginationParams(), filters, member)).total == 1
        assert (await service.find_all(PaginationParams(), filters, member)).total == 1
        assert cache_metrics.hits == 1

        await service.create(new_record(JAN_2), member)

        assert (await service.find_all(PaginationParams(), filters, member)).total == 2


# ============================================================================
# END-TO-END SCENARIO
# ============================================================================


@pytest.mark.unit
class TestStreakScenario:
    """Plan P1 owned by U1, walking through two days with a removal."""

    async def test_create_remove_and_reactivate(self, service, member, leaderboard, clock):
        clock.set_today(JAN_1)
        first = await service.create(new_record(JAN_1), member)
        assert leaderboard.streaks["user-1"] == 1

        clock.set_today(JAN_2)
        await service.create(new_record(JAN_2), member)
        assert leaderboard.streaks["user-1"] == 2

        await service.remove(first.id, member)
        revived = await service.create(new_record(JAN_1), member)

        assert revived.id == first.id
        assert revived.is_deleted is False
        assert leaderboard.streaks["user-1"] == 2
