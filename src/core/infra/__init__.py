"""
Infrastructure lifecycle.

`ApplicationContext` starts the configuration, database, Redis and service
layers in dependency order and shuts them down in reverse.
"""

from src.core.infra.application_context import ApplicationContext

__all__ = ["ApplicationContext"]
