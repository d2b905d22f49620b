"""
Input payloads and result envelopes for progress tracking.

Field-level validation runs when a payload is constructed and raises
`ValidationError`, so malformed input is rejected before any I/O. Checks
that need a clock or the store (future dates, uniqueness) stay in the
service.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

from src.modules.shared.exceptions import ValidationError

T = TypeVar("T")

MAX_NOTES_LENGTH = 1000
MIN_HEALTH_SCORE = 0
MAX_HEALTH_SCORE = 100

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100
DEFAULT_ORDER_BY = "created_at"
DEFAULT_SORT_ORDER = "desc"
SORTABLE_FIELDS = frozenset(
    {"record_date", "created_at", "updated_at", "cigarettes_smoked", "health_score"}
)


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


def _check_cigarettes(value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(
            "cigarettes_smoked", f"must be a non-negative integer, got {value!r}"
        )


def _check_health_score(value: Any) -> None:
    if value is None:
        return
    if (
        isinstance(value, bool)
        or not isinstance(value, int)
        or not MIN_HEALTH_SCORE <= value <= MAX_HEALTH_SCORE
    ):
        raise ValidationError(
            "health_score",
            f"must be an integer between {MIN_HEALTH_SCORE} and {MAX_HEALTH_SCORE}, got {value!r}",
        )


def _check_notes(value: Any) -> None:
    if value is None:
        return
    if not isinstance(value, str):
        raise ValidationError("notes", "must be a string")
    if len(value) > MAX_NOTES_LENGTH:
        raise ValidationError("notes", f"must be at most {MAX_NOTES_LENGTH} characters")


def _check_date(name: str, value: Any) -> None:
    # datetime is a date subclass; a day field must hold a plain date.
    if type(value) is not date:
        raise ValidationError(name, f"must be a calendar date, got {value!r}")


_FIELD_CHECKS: Dict[str, Callable[[Any], None]] = {
    "record_date": lambda v: _check_date("record_date", v),
    "cigarettes_smoked": _check_cigarettes,
    "health_score": _check_health_score,
    "notes": _check_notes,
}


@dataclass(frozen=True)
class CreateProgressRecordInput:
    plan_id: str
    record_date: date
    cigarettes_smoked: int = 0
    health_score: Optional[int] = None
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.plan_id:
            raise ValidationError("plan_id", "is required")
        for name, check in _FIELD_CHECKS.items():
            check(getattr(self, name))

    def values(self) -> Dict[str, Any]:
        """Writable fields; reused verbatim when the create becomes a reactivation."""
        return {
            "record_date": self.record_date,
            "cigarettes_smoked": self.cigarettes_smoked,
            "health_score": self.health_score,
            "notes": self.notes,
        }


@dataclass(frozen=True)
class UpdateProgressRecordInput:
    """
    Partial update. Fields left as `UNSET` are not touched; `health_score`
    and `notes` may be explicitly set to None to clear them.
    """

    record_date: Any = UNSET
    cigarettes_smoked: Any = UNSET
    health_score: Any = UNSET
    notes: Any = UNSET

    def __post_init__(self) -> None:
        if self.record_date is None:
            raise ValidationError("record_date", "cannot be cleared")
        if self.cigarettes_smoked is None:
            raise ValidationError("cigarettes_smoked", "cannot be cleared")
        for name, value in self.changes().items():
            _FIELD_CHECKS[name](value)

    def changes(self) -> Dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not UNSET
        }

    @classmethod
    def from_values(cls, values: Dict[str, Any]) -> "UpdateProgressRecordInput":
        return cls(**values)


@dataclass(frozen=True)
class ProgressRecordFilters:
    plan_id: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    def __post_init__(self) -> None:
        if self.start_date is not None:
            _check_date("start_date", self.start_date)
        if self.end_date is not None:
            _check_date("end_date", self.end_date)
        if (
            self.start_date is not None
            and self.end_date is not None
            and self.start_date > self.end_date
        ):
            raise ValidationError("start_date", "must not be after end_date")

    def fingerprint_params(self) -> Dict[str, Any]:
        return {
            "plan_id": self.plan_id,
            "start_date": self.start_date,
            "end_date": self.end_date,
        }


@dataclass(frozen=True)
class PaginationParams:
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    order_by: str = DEFAULT_ORDER_BY
    sort_order: str = DEFAULT_SORT_ORDER

    def __post_init__(self) -> None:
        if isinstance(self.page, bool) or not isinstance(self.page, int) or self.page < 1:
            raise ValidationError("page", f"must be an integer >= 1, got {self.page!r}")
        if (
            isinstance(self.limit, bool)
            or not isinstance(self.limit, int)
            or self.limit < 1
        ):
            raise ValidationError("limit", f"must be an integer >= 1, got {self.limit!r}")
        if self.order_by not in SORTABLE_FIELDS:
            raise ValidationError(
                "order_by", f"must be one of {sorted(SORTABLE_FIELDS)}, got {self.order_by!r}"
            )
        if self.sort_order not in ("asc", "desc"):
            raise ValidationError("sort_order", "must be 'asc' or 'desc'")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def fingerprint_params(self) -> Dict[str, Any]:
        return {
            "page": self.page,
            "limit": self.limit,
            "order_by": self.order_by,
            "sort_order": self.sort_order,
        }


@dataclass(frozen=True)
class PaginatedResult(Generic[T]):
    data: List[T]
    total: int
    page: int
    limit: int

    @property
    def has_next(self) -> bool:
        return self.total > self.page * self.limit

    def to_dict(self, encode_item: Callable[[T], Any]) -> Dict[str, Any]:
        return {
            "data": [encode_item(item) for item in self.data],
            "total": self.total,
            "page": self.page,
            "limit": self.limit,
            "has_next": self.has_next,
        }

    @classmethod
    def from_dict(
        cls, payload: Dict[str, Any], decode_item: Callable[[Any], T]
    ) -> "PaginatedResult[T]":
        return cls(
            data=[decode_item(item) for item in payload["data"]],
            total=int(payload["total"]),
            page=int(payload["page"]),
            limit=int(payload["limit"]),
        )
