"""
ProgressRecord: one day of smoking data logged against a cessation plan.
Schema only.

At most one non-deleted row may exist per (plan_id, record_date). The
partial unique index enforces it at the storage layer; soft-deleted rows
are excluded so a deleted day can be logged again (the service reactivates
the deleted row rather than inserting a second one).
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import Base, IdMixin, SoftDeleteMixin, TimestampMixin

if TYPE_CHECKING:
    from .cessation_plan import CessationPlan

ACTIVE_DAY_INDEX = "uq_progress_records_plan_day_active"


class ProgressRecord(Base, IdMixin, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "progress_records"
    __table_args__ = (
        Index(
            ACTIVE_DAY_INDEX,
            "plan_id",
            "record_date",
            unique=True,
            postgresql_where=text("is_deleted = false"),
            sqlite_where=text("is_deleted = 0"),
        ),
        Index("ix_progress_records_plan_date", "plan_id", "record_date"),
        CheckConstraint("cigarettes_smoked >= 0", name="cigarettes_non_negative"),
        CheckConstraint(
            "health_score IS NULL OR (health_score >= 0 AND health_score <= 100)",
            name="health_score_range",
        ),
    )

    plan_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("cessation_plans.id", ondelete="CASCADE"),
        nullable=False,
    )
    record_date: Mapped[date] = mapped_column(Date, nullable=False)
    cigarettes_smoked: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    health_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    plan: Mapped["CessationPlan"] = relationship(
        back_populates="progress_records", lazy="joined", innerjoin=True
    )
