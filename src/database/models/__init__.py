"""
Database Models Package
========================

SQLAlchemy ORM models, organized by domain:

- progression: cessation plans and the daily progress records logged against them
- enums: shared categorical values

All models are schema-only, use `Mapped[]` with `mapped_column()`, and
combine the mixins from `src.core.database.base`. Importing this package
registers every table on `Base.metadata`.
"""

from src.core.database.base import Base

from .enums import PlanStatus
from .progression import ACTIVE_DAY_INDEX, CessationPlan, ProgressRecord

__all__ = [
    "Base",
    "PlanStatus",
    "CessationPlan",
    "ProgressRecord",
    "ACTIVE_DAY_INDEX",
]
