"""
Unit tests for ServiceContainer wiring.
"""

import logging

import pytest

from src.core.config.manager import ConfigManager
from src.core.event.bus import EventBus
from src.core.services.container import ServiceContainer
from src.domain.models.progress_record import PROGRESS_RECORD_CHANGED
from src.modules.progress.service import ProgressRecordService
from tests.conftest import FakeCacheStore


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def store():
    return FakeCacheStore()


@pytest.fixture
def container(bus, store):
    return ServiceContainer(
        ConfigManager, bus, logging.getLogger("test.container"), cache_store=store
    )


@pytest.mark.unit
class TestServiceContainer:
    """initialize() / shutdown()"""

    def test_services_unavailable_before_initialize(self, container):
        with pytest.raises(RuntimeError):
            container.progress_records

    async def test_initialize_registers_invalidators(self, container, bus):
        await container.initialize()

        assert container.is_initialized
        assert isinstance(container.progress_records, ProgressRecordService)
        assert bus.get_listener_count(PROGRESS_RECORD_CHANGED) == 4
        assert container.health_check()["invalidators"] == 4

    async def test_initialize_twice_is_noop(self, container, bus):
        await container.initialize()
        await container.initialize()

        assert bus.get_listener_count(PROGRESS_RECORD_CHANGED) == 4

    async def test_shutdown_unregisters_invalidators(self, container, bus):
        await container.initialize()
        await container.shutdown()

        assert not container.is_initialized
        assert bus.get_listener_count(PROGRESS_RECORD_CHANGED) == 0

    async def test_invalidation_event_reaches_injected_store(self, container, bus, store):
        store.data["progress-record:one:r1"] = "{}"
        await container.initialize()

        await bus.publish(
            PROGRESS_RECORD_CHANGED,
            {"record_id": "r1", "plan_id": "plan-1", "user_id": "user-1"},
        )

        assert "progress-record:one:r1" not in store.data
        assert "leaderboard:*:user-1*" in store.scanned
