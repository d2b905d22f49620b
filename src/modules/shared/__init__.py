"""
Shared Module

Purpose
-------
Domain-level foundations for every feature module:
- Domain exceptions (NotFound / Forbidden / Validation / Conflict)
- Base service and repository patterns

Usage
-----
    from src.modules.shared import BaseService, BaseRepository, ConflictError
"""

from __future__ import annotations

from .base_repository import BaseRepository
from .base_service import BaseService
from .exceptions import (
    ConflictError,
    DomainException,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)

__all__ = [
    "BaseRepository",
    "BaseService",
    "DomainException",
    "NotFoundError",
    "ForbiddenError",
    "ValidationError",
    "ConflictError",
]
