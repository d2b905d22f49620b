"""
Database subsystem: declarative base, mixins, and the async session service.
"""

from src.core.database.base import Base, IdMixin, SoftDeleteMixin, TimestampMixin
from src.core.database.service import (
    DatabaseInitializationError,
    DatabaseNotInitializedError,
    DatabaseService,
)

__all__ = [
    "Base",
    "IdMixin",
    "TimestampMixin",
    "SoftDeleteMixin",
    "DatabaseService",
    "DatabaseInitializationError",
    "DatabaseNotInitializedError",
]
