"""
Progression domain ORM models.

Exports:
- CessationPlan
- ProgressRecord
"""

from .cessation_plan import CessationPlan
from .progress_record import ACTIVE_DAY_INDEX, ProgressRecord

__all__ = ["CessationPlan", "ProgressRecord", "ACTIVE_DAY_INDEX"]
