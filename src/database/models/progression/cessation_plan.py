"""
CessationPlan: a user's quit-smoking plan.
Schema only; only the columns progress tracking reads are modelled here.
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Date, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import Base, IdMixin, SoftDeleteMixin, TimestampMixin
from ..enums import PlanStatus

if TYPE_CHECKING:
    from .progress_record import ProgressRecord


class CessationPlan(Base, IdMixin, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "cessation_plans"
    __table_args__ = (Index("ix_cessation_plans_user_status", "user_id", "status"),)

    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    target_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PlanStatus.PLANNING.value
    )

    progress_records: Mapped[List["ProgressRecord"]] = relationship(
        back_populates="plan", lazy="raise"
    )
