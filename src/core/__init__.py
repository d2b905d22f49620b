"""
Core infrastructure layer.

Purpose
-------
A single import surface for the infrastructure subsystems:

- Configuration (Config, ConfigManager)
- Database (DatabaseService, declarative Base)
- Redis (RedisService)
- Logging (get_logger, LogContext)
- Infrastructure exceptions

Non-Responsibilities
--------------------
- Business logic (feature modules under `src.modules`)
- Any side effects beyond re-exports

Feature modules still import from the concrete submodules; this package
exists for bootstrap code and quick interactive use.
"""

from __future__ import annotations

from src.core.config import Config
from src.core.config.manager import ConfigManager
from src.core.database import Base, DatabaseService
from src.core.exceptions import (
    CacheError,
    ConfigurationError,
    DatabaseError,
    ErrorSeverity,
    InfrastructureException,
    RedisConnectionError,
)
from src.core.logging import LogContext, get_logger
from src.core.redis import RedisService

__all__ = [
    "Config",
    "ConfigManager",
    "Base",
    "DatabaseService",
    "RedisService",
    "get_logger",
    "LogContext",
    "InfrastructureException",
    "ConfigurationError",
    "DatabaseError",
    "RedisConnectionError",
    "CacheError",
    "ErrorSeverity",
]
