"""
Unit tests for the invalidation cascade.

A progress record mutation publishes one ``progress_record.changed`` event;
each domain's invalidator clears its own namespace.
"""

from datetime import date

import pytest

from src.core.event.types import ListenerPriority
from src.domain.models.progress_record import PROGRESS_RECORD_CHANGED
from src.modules.leaderboard.cache import leaderboard_patterns
from src.modules.plan.cache import plan_patterns, plan_stage_patterns
from src.modules.progress import cache as progress_cache
from src.modules.progress.invalidation import (
    ProgressInvalidationDispatcher,
    progress_record_changed,
)
from src.modules.progress.schemas import CreateProgressRecordInput, UpdateProgressRecordInput

JAN_1 = date(2024, 1, 1)


@pytest.mark.unit
class TestPatterns:
    """Each namespace's keys and patterns."""

    def test_progress_record_patterns(self):
        assert progress_cache.own_keys("r1") == ["progress-record:one:r1"]
        assert progress_cache.own_patterns("p1", "u1") == [
            "progress-record:list:*",
            "progress-record:*:p1:*",
            "progress-record:*:u1:*",
        ]

    def test_plan_patterns(self):
        assert plan_patterns("p1", "u1") == [
            "cessation-plan:one:p1*",
            "cessation-plan:byUser:u1*",
            "cessation-plan:all:*",
            "cessation-plan:stats:*",
        ]
        assert plan_stage_patterns("p1") == [
            "plan-stage:chart:p1*",
            "plan-stage:byPlan:p1*",
            "plan-stage:statistics:*",
        ]

    def test_leaderboard_patterns_skip_sorted_set(self):
        patterns = leaderboard_patterns("u1")
        assert patterns == ["leaderboard:*:u1*", "streak:*:u1*"]
        assert "leaderboard:streak" not in patterns

    def test_event_payload(self):
        event = progress_record_changed("r1", "p1", "u1")
        payload = event.to_bus_payload()
        assert event.event_name == PROGRESS_RECORD_CHANGED
        assert {k: payload[k] for k in ("record_id", "plan_id", "user_id")} == {
            "record_id": "r1",
            "plan_id": "p1",
            "user_id": "u1",
        }
        assert "occurred_at" in payload


@pytest.mark.unit
class TestDispatcher:
    """The dispatcher only publishes; listeners do the clearing."""

    async def test_publishes_changed_event(self, mocker):
        bus = mocker.MagicMock()
        bus.publish = mocker.AsyncMock()

        await ProgressInvalidationDispatcher(bus).dispatch("r1", "p1", "u1")

        event_name, payload = bus.publish.await_args.args
        assert event_name == "progress_record.changed"
        assert payload["record_id"] == "r1"

    async def test_all_domains_subscribe_at_normal(self, event_bus, register_invalidators):
        assert event_bus.get_listener_count(PROGRESS_RECORD_CHANGED) == 4
        listeners = event_bus._registry.listeners_for_event(PROGRESS_RECORD_CHANGED)
        assert {listener.priority for listener in listeners} == {ListenerPriority.NORMAL}


@pytest.mark.unit
class TestCascadeThroughService:
    """Mutations clear every dependent namespace."""

    @pytest.fixture
    def seeded(self, cache_store):
        cache_store.data.update(
            {
                "cessation-plan:one:plan-1": "{}",
                "cessation-plan:byUser:user-1:abc": "{}",
                "cessation-plan:all:page1": "{}",
                "cessation-plan:stats:global": "{}",
                "cessation-plan:one:plan-2": "{}",
                "plan-stage:chart:plan-1:x": "{}",
                "plan-stage:byPlan:plan-1": "{}",
                "plan-stage:statistics:all": "{}",
                "plan-stage:chart:plan-2:x": "{}",
                "leaderboard:weekly:user-1": "{}",
                "streak:current:user-1": "{}",
                "streak:current:user-2": "{}",
                "leaderboard:streak": "zset",
            }
        )
        return cache_store

    async def test_create_clears_dependent_keys(self, service, member, seeded):
        await service.create(CreateProgressRecordInput(plan_id="plan-1", record_date=JAN_1), member)

        assert set(seeded.data) == {
            "cessation-plan:one:plan-2",
            "plan-stage:chart:plan-2:x",
            "streak:current:user-2",
            "leaderboard:streak",
        }

    async def test_every_pattern_is_scanned(self, service, member, seeded):
        record = await service.create(
            CreateProgressRecordInput(plan_id="plan-1", record_date=JAN_1), member
        )

        expected = (
            progress_cache.own_patterns("plan-1", "user-1")
            + plan_patterns("plan-1", "user-1")
            + plan_stage_patterns("plan-1")
            + leaderboard_patterns("user-1")
        )
        assert sorted(seeded.scanned) == sorted(expected)
        assert f"progress-record:one:{record.id}" in seeded.deleted
        assert "cessation-plan:one:plan-1" in seeded.deleted

    async def test_update_and_remove_also_invalidate(self, service, member, seeded):
        record = await service.create(
            CreateProgressRecordInput(plan_id="plan-1", record_date=JAN_1), member
        )
        seeded.scanned.clear()

        await service.update(record.id, UpdateProgressRecordInput(notes="n"), member)
        assert "progress-record:list:*" in seeded.scanned

        seeded.scanned.clear()
        await service.remove(record.id, member)
        assert "progress-record:list:*" in seeded.scanned

    async def test_cache_outage_does_not_fail_mutation(self, service, member, seeded, cache_metrics):
        seeded.failing = {"scan", "delete"}

        record = await service.create(
            CreateProgressRecordInput(plan_id="plan-1", record_date=JAN_1), member
        )

        assert record.id
        assert cache_metrics.errors > 0
        assert "leaderboard:weekly:user-1" in seeded.data

    async def test_failed_dispatch_does_not_fail_mutation(self, service, member, event_bus, mocker):
        mocker.patch.object(event_bus, "publish", side_effect=RuntimeError("bus down"))

        record = await service.create(
            CreateProgressRecordInput(plan_id="plan-1", record_date=JAN_1), member
        )

        assert record.record_date == JAN_1
