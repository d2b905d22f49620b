"""
Database Model Enums
====================

Categorical values stored as strings. Service code compares against these
members rather than raw literals.
"""

from __future__ import annotations

import enum


class PlanStatus(str, enum.Enum):
    """Lifecycle of a cessation plan."""

    PLANNING = "PLANNING"
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    COMPLETED = "COMPLETED"
    ABANDONED = "ABANDONED"
    CANCELLED = "CANCELLED"
