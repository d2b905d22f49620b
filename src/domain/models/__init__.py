"""
Domain models package.

Plain, immutable domain objects returned by services and stored in the
cache, kept separate from the SQLAlchemy schemas in `src.database.models`.
"""

from .base import DomainEvent
from .principal import Principal, UserRole
from .progress_record import (
    DATE_FIELDS,
    PROGRESS_RECORD_CHANGED,
    PlanSummary,
    ProgressRecordData,
    RecordStatus,
)

__all__ = [
    "DomainEvent",
    "Principal",
    "UserRole",
    "PlanSummary",
    "ProgressRecordData",
    "RecordStatus",
    "DATE_FIELDS",
    "PROGRESS_RECORD_CHANGED",
]
