"""
Unit tests for the cache layer: keys, date rehydration, read-through
behaviour and best-effort invalidation.
"""

from datetime import date, datetime, timezone

import pytest

from src.core.cache import (
    CacheInvalidator,
    CacheMetrics,
    ReadThroughCache,
    build_cache_key,
    build_one_cache_key,
    fingerprint,
    revive_dates,
)
from src.core.cache.serialization import dumps
from src.core.config.manager import ConfigManager
from src.modules.progress.cache import ProgressRecordCache
from src.modules.progress.schemas import PaginationParams, ProgressRecordFilters

from tests.conftest import FakeCacheStore


def identity(value):
    return value


@pytest.mark.unit
class TestCacheKeys:
    """Key layout and parameter fingerprints."""

    def test_one_key(self):
        assert build_one_cache_key("progress-record", "abc") == "progress-record:one:abc"

    def test_fingerprint_ignores_dict_order(self):
        assert fingerprint({"a": 1, "b": 2}) == fingerprint({"b": 2, "a": 1})

    def test_fingerprint_changes_with_params(self):
        assert fingerprint({"page": 1}) != fingerprint({"page": 2})

    def test_fingerprint_accepts_dates(self):
        assert len(fingerprint({"start": date(2024, 1, 1)})) == 40

    def test_scoped_list_key(self):
        key = build_cache_key("progress-record", "list", "plan-1", "user-1", params={"page": 1})
        prefix, operation, plan_id, user_id, digest = key.split(":")
        assert (prefix, operation, plan_id, user_id) == ("progress-record", "list", "plan-1", "user-1")
        assert digest == fingerprint({"page": 1})

    def test_missing_scope_is_all(self):
        assert build_cache_key("progress-record", "list", None, "u") == "progress-record:list:all:u"


@pytest.mark.unit
class TestReviveDates:
    """ISO strings come back as date / datetime for the named fields only."""

    FIELDS = {"record_date": date, "created_at": datetime}

    def test_revives_nested_envelope(self):
        payload = {
            "data": [{"record_date": "2024-01-01", "created_at": "2024-01-01T08:30:00+00:00", "notes": "2024-01-01"}],
            "total": 1,
        }

        revived = revive_dates(payload, self.FIELDS)
        item = revived["data"][0]

        assert item["record_date"] == date(2024, 1, 1)
        assert item["created_at"] == datetime(2024, 1, 1, 8, 30, tzinfo=timezone.utc)
        assert item["notes"] == "2024-01-01"

    def test_datetime_string_under_date_field(self):
        assert revive_dates({"record_date": "2024-01-01T00:00:00"}, self.FIELDS) == {
            "record_date": date(2024, 1, 1)
        }

    def test_none_is_left_alone(self):
        assert revive_dates({"created_at": None}, self.FIELDS) == {"created_at": None}

    def test_invalid_string_raises(self):
        with pytest.raises(ValueError):
            revive_dates({"record_date": "yesterday"}, self.FIELDS)


@pytest.mark.unit
class TestReadThroughCache:
    """get_or_load(): hits, misses and degraded modes."""

    @pytest.fixture
    def store(self):
        return FakeCacheStore()

    @pytest.fixture
    def cache(self, store):
        return ReadThroughCache(store, CacheMetrics(), default_ttl_seconds=300)

    async def test_miss_loads_and_populates(self, cache, store, mocker):
        loader = mocker.AsyncMock(return_value={"x": 1})

        value = await cache.get_or_load("k", loader, encode=identity, decode=identity)

        assert value == {"x": 1}
        assert store.data["k"] == dumps({"x": 1})
        assert store.ttls["k"] == 300
        assert cache.metrics.misses == 1

    async def test_hit_skips_loader(self, cache, store, mocker):
        store.data["k"] = dumps({"x": 2})
        loader = mocker.AsyncMock()

        value = await cache.get_or_load("k", loader, encode=identity, decode=identity)

        assert value == {"x": 2}
        loader.assert_not_awaited()
        assert cache.metrics.hits == 1

    async def test_none_is_not_cached(self, cache, store, mocker):
        loader = mocker.AsyncMock(return_value=None)

        assert await cache.get_or_load("k", loader, encode=identity, decode=identity) is None
        assert "k" not in store.data

    async def test_explicit_ttl_wins(self, cache, store, mocker):
        loader = mocker.AsyncMock(return_value=1)
        await cache.get_or_load("k", loader, encode=identity, decode=identity, ttl_seconds=5)
        assert store.ttls["k"] == 5

    async def test_read_failure_falls_back_to_loader(self, cache, store, mocker):
        store.failing = {"get"}
        loader = mocker.AsyncMock(return_value=3)

        assert await cache.get_or_load("k", loader, encode=identity, decode=identity) == 3
        assert cache.metrics.errors_by_operation == {"get": 1}

    async def test_write_failure_is_swallowed(self, cache, store, mocker):
        store.failing = {"set"}
        loader = mocker.AsyncMock(return_value=4)

        assert await cache.get_or_load("k", loader, encode=identity, decode=identity) == 4
        assert cache.metrics.errors_by_operation == {"set": 1}

    async def test_corrupt_payload_is_a_miss(self, cache, store, mocker):
        store.data["k"] = "{not json"
        loader = mocker.AsyncMock(return_value={"fresh": True})

        value = await cache.get_or_load("k", loader, encode=identity, decode=identity)

        assert value == {"fresh": True}
        assert store.data["k"] == dumps({"fresh": True})
        assert cache.metrics.errors_by_operation == {"decode": 1}

    async def test_undecodable_shape_is_a_miss(self, cache, store, mocker):
        store.data["k"] = dumps({"unexpected": 1})
        loader = mocker.AsyncMock(return_value={"id": "1"})

        def decode(payload):
            return payload["id"]

        assert await cache.get_or_load("k", loader, encode=identity, decode=decode) == {"id": "1"}

    async def test_ttl_defaults_to_config(self, store):
        assert ReadThroughCache(store).default_ttl_seconds == 300

    @pytest.mark.parametrize("configured", ["five", 0, None])
    async def test_invalid_configured_ttl_falls_back(self, store, mocker, configured):
        ConfigManager.set_override("progress.cache.ttl_seconds", configured)
        cache = ReadThroughCache(store, CacheMetrics())
        loader = mocker.AsyncMock(return_value={"x": 1})

        value = await cache.get_or_load("k", loader, encode=identity, decode=identity)

        assert value == {"x": 1}
        assert store.ttls["k"] == 300

    async def test_encode_failure_is_swallowed(self, cache, store, mocker):
        loader = mocker.AsyncMock(return_value={"x": 1})

        def broken_encode(value):
            raise TypeError("not serializable")

        value = await cache.get_or_load("k", loader, encode=broken_encode, decode=identity)

        assert value == {"x": 1}
        assert "k" not in store.data
        assert cache.metrics.errors_by_operation == {"set": 1}


@pytest.mark.unit
class TestProgressRecordCache:
    """get_page()"""

    async def test_empty_loader_result_raises(self, mocker):
        cache = ProgressRecordCache(ReadThroughCache(FakeCacheStore(), CacheMetrics(), default_ttl_seconds=300))
        loader = mocker.AsyncMock(return_value=None)

        with pytest.raises(RuntimeError, match="no result"):
            await cache.get_page("user-1", PaginationParams(), ProgressRecordFilters(), loader)


@pytest.mark.unit
class TestCacheInvalidator:
    """Key and pattern invalidation isolate every failure."""

    @pytest.fixture
    def store(self):
        store = FakeCacheStore()
        store.data.update({"a:one:1": "1", "a:list:x": "2", "a:list:y": "3", "b:one:1": "4"})
        return store

    async def test_keys_and_patterns(self, store):
        report = await CacheInvalidator(store).invalidate(keys=["a:one:1"], patterns=["a:list:*"])

        assert report.ok
        assert report.deleted == 3
        assert set(store.data) == {"b:one:1"}

    async def test_pattern_without_matches_deletes_nothing(self, store):
        report = await CacheInvalidator(store).invalidate(patterns=["zzz:*"])
        assert report.deleted == 0
        assert store.deleted == []

    async def test_scan_failure_is_reported_not_raised(self, store):
        store.failing = {"scan"}
        metrics = CacheMetrics()

        report = await CacheInvalidator(store, metrics).invalidate(
            keys=["a:one:1"], patterns=["a:list:*", "b:*"]
        )

        assert report.failed_patterns == ["a:list:*", "b:*"]
        assert report.deleted == 1
        assert metrics.errors_by_operation == {"scan": 2}

    async def test_delete_failure_is_reported_per_key(self, store):
        store.failing = {"delete"}

        report = await CacheInvalidator(store).invalidate(keys=["a:one:1", "b:one:1"])

        assert report.failed_keys == ["a:one:1", "b:one:1"]
        assert not report.ok
