"""
Progress record caching: key layout and read-through helpers.

Key layout
----------
- ``progress-record:one:{record_id}``
- ``progress-record:list:{plan_id|all}:{user_id}:{fingerprint}``

The list key carries the plan id and the requesting user id as plain
segments so the invalidator can clear every listing for a plan or a user
with ``progress-record:*:{id}:*`` without tracking issued fingerprints.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, List, Optional

from src.core.cache.keys import build_cache_key, build_one_cache_key
from src.core.cache.read_through import ReadThroughCache
from src.domain.models.progress_record import ProgressRecordData
from src.modules.progress.schemas import (
    PaginatedResult,
    PaginationParams,
    ProgressRecordFilters,
)

PREFIX = "progress-record"


def one_key(record_id: str) -> str:
    return build_one_cache_key(PREFIX, record_id)


def list_key(
    user_id: str, pagination: PaginationParams, filters: ProgressRecordFilters
) -> str:
    return build_cache_key(
        PREFIX,
        "list",
        filters.plan_id,
        user_id,
        params={
            "pagination": pagination.fingerprint_params(),
            "filters": filters.fingerprint_params(),
        },
    )


def own_keys(record_id: str) -> List[str]:
    return [one_key(record_id)]


def own_patterns(plan_id: str, user_id: str) -> List[str]:
    return [
        f"{PREFIX}:list:*",
        f"{PREFIX}:*:{plan_id}:*",
        f"{PREFIX}:*:{user_id}:*",
    ]


def _encode_page(result: PaginatedResult[ProgressRecordData]) -> Any:
    return result.to_dict(ProgressRecordData.to_dict)


def _decode_page(payload: Any) -> PaginatedResult[ProgressRecordData]:
    return PaginatedResult.from_dict(payload, ProgressRecordData.from_dict)


class ProgressRecordCache:
    """Typed read-through access for single records and listings."""

    def __init__(self, cache: ReadThroughCache) -> None:
        self.cache = cache

    async def get_one(
        self,
        record_id: str,
        loader: Callable[[], Awaitable[Optional[ProgressRecordData]]],
    ) -> Optional[ProgressRecordData]:
        return await self.cache.get_or_load(
            one_key(record_id),
            loader,
            encode=ProgressRecordData.to_dict,
            decode=ProgressRecordData.from_dict,
        )

    async def get_page(
        self,
        user_id: str,
        pagination: PaginationParams,
        filters: ProgressRecordFilters,
        loader: Callable[[], Awaitable[PaginatedResult[ProgressRecordData]]],
    ) -> PaginatedResult[ProgressRecordData]:
        result = await self.cache.get_or_load(
            list_key(user_id, pagination, filters),
            loader,
            encode=_encode_page,
            decode=_decode_page,
        )
        if result is None:
            raise RuntimeError("Page loader returned no result")
        return result
