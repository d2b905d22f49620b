"""
Progress Module
===============

Domain: daily smoking-cessation progress records

Components:
- ProgressRecordService: create / update / remove / find_one / find_all
- SqlAlchemyRecordStore: Record Store over the progress_records table
- calculate_streak: consecutive clean-day streak
- ProgressRecordCache: read-through cache for records and listings
- ProgressInvalidationDispatcher: publishes progress_record.changed
"""

from .cache import ProgressRecordCache
from .invalidation import (
    ProgressInvalidationDispatcher,
    ProgressRecordCacheInvalidator,
    progress_record_changed,
)
from .repository import RecordStore, SqlAlchemyRecordStore
from .schemas import (
    CreateProgressRecordInput,
    PaginatedResult,
    PaginationParams,
    ProgressRecordFilters,
    UpdateProgressRecordInput,
)
from .service import ProgressRecordService
from .streak import calculate_streak

__all__ = [
    "CreateProgressRecordInput",
    "PaginatedResult",
    "PaginationParams",
    "ProgressInvalidationDispatcher",
    "ProgressRecordCache",
    "ProgressRecordCacheInvalidator",
    "ProgressRecordFilters",
    "ProgressRecordService",
    "RecordStore",
    "SqlAlchemyRecordStore",
    "UpdateProgressRecordInput",
    "calculate_streak",
    "progress_record_changed",
]
