"""
Progress record domain model.

Purpose
-------
Immutable view of a progress record plus the summary of the plan that owns
it. This is the type the service returns, the cache stores (as JSON) and
the streak calculator reads.

Lifecycle
---------
A record is either ACTIVE or DELETED:

    create      -> ACTIVE
    soft_delete : ACTIVE  -> DELETED
    reactivate  : DELETED -> ACTIVE   (same id, fields overwritten)

There are no hard deletes.
"""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Dict, Optional

from src.core.cache.serialization import revive_dates

if TYPE_CHECKING:
    from src.database.models import ProgressRecord


class RecordStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    DELETED = "DELETED"

    @classmethod
    def from_flag(cls, is_deleted: bool) -> "RecordStatus":
        return cls.DELETED if is_deleted else cls.ACTIVE


# Published after every successful create, update or remove.
PROGRESS_RECORD_CHANGED = "progress_record.changed"

# Fields revived from ISO strings when a record comes back out of the cache.
DATE_FIELDS = {
    "record_date": date,
    "created_at": datetime,
    "updated_at": datetime,
}


@dataclass(frozen=True)
class PlanSummary:
    id: str
    user_id: str
    status: str


@dataclass(frozen=True)
class ProgressRecordData:
    id: str
    plan_id: str
    record_date: date
    cigarettes_smoked: int
    health_score: Optional[int]
    notes: Optional[str]
    is_deleted: bool
    created_at: datetime
    updated_at: datetime
    plan: Optional[PlanSummary] = None

    @property
    def status(self) -> RecordStatus:
        return RecordStatus.from_flag(self.is_deleted)

    @property
    def is_clean(self) -> bool:
        return self.cigarettes_smoked == 0

    @property
    def owner_id(self) -> Optional[str]:
        return self.plan.user_id if self.plan is not None else None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProgressRecordData":
        """
        Rebuild from `to_dict()` output or its JSON round-trip.

        Raises KeyError / ValueError / TypeError on malformed input.
        """
        data = revive_dates(data, DATE_FIELDS)
        plan = data.get("plan")
        return cls(
            id=str(data["id"]),
            plan_id=str(data["plan_id"]),
            record_date=data["record_date"],
            cigarettes_smoked=int(data["cigarettes_smoked"]),
            health_score=data.get("health_score"),
            notes=data.get("notes"),
            is_deleted=bool(data["is_deleted"]),
            created_at=data["created_at"],
            updated_at=data["updated_at"],
            plan=PlanSummary(**plan) if plan is not None else None,
        )

    @classmethod
    def from_row(cls, row: "ProgressRecord") -> "ProgressRecordData":
        """Convert an ORM row whose `plan` relationship is already loaded."""
        plan = row.plan
        return cls(
            id=row.id,
            plan_id=row.plan_id,
            record_date=row.record_date,
            cigarettes_smoked=row.cigarettes_smoked,
            health_score=row.health_score,
            notes=row.notes,
            is_deleted=row.is_deleted,
            created_at=row.created_at,
            updated_at=row.updated_at,
            plan=PlanSummary(id=plan.id, user_id=plan.user_id, status=plan.status)
            if plan is not None
            else None,
        )
