"""
Base Service Pattern

Purpose
-------
Common plumbing for domain services: config access through ConfigManager,
event emission through the EventBus, and structured operation/error logs.
Services inherit from it and keep their own business rules.

Usage
-----
    class ProgressRecordService(BaseService):
        def __init__(self, config_manager, event_bus, logger, store, ...):
            super().__init__(config_manager, event_bus, logger)
            ...
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from src.core.exceptions import ConfigurationError
from src.modules.shared.exceptions import ValidationError

if TYPE_CHECKING:
    from logging import Logger

    from src.core.config.manager import ConfigManager
    from src.core.event.bus import EventBus


class BaseService:
    """
    Base class for all domain services.

    Args:
        config_manager: Application configuration manager (class or instance)
        event_bus: Event bus for cross-module communication
        logger: Structured logger instance
    """

    def __init__(
        self,
        config_manager: type[ConfigManager] | ConfigManager,
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        self._config = config_manager
        self._events = event_bus
        self.log = logger

    def get_config(
        self, key: str, default: Optional[Any] = None, required: bool = False
    ) -> Any:
        """
        Retrieve a configuration value.

        Raises:
            ConfigurationError: If required=True and the key is missing
        """
        value = self._config.get(key, default)
        if required and value is None:
            raise ConfigurationError(
                key, f"Required configuration key '{key}' is missing"
            )
        return value

    def get_int_config(self, key: str, default: int, minimum: int = 0) -> int:
        """Integer config value; falls back to `default` when unparsable or below `minimum`."""
        value = self.get_config(key, default)
        try:
            parsed = int(value)
        except (TypeError, ValueError):
            self.log.warning(
                "Invalid integer config value, using default",
                extra={"config_key": key, "value": value, "default": default},
            )
            return default
        if parsed < minimum:
            self.log.warning(
                "Config value below minimum, using default",
                extra={"config_key": key, "value": parsed, "minimum": minimum},
            )
            return default
        return parsed

    async def emit_event(
        self,
        event_type: str,
        data: Dict[str, Any],
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        await self._events.publish(event_type, {**data, **(context or {})})

    def log_operation(self, operation: str, **context: Any) -> None:
        self.log.info(
            f"Service operation: {operation}",
            extra={"operation": operation, **context},
        )

    def log_error(
        self,
        operation: str,
        error: Exception,
        **context: Any,
    ) -> None:
        """Log a failed side effect with its traceback."""
        self.log.error(
            f"Service error during {operation}: {error}",
            extra={
                "operation": operation,
                "error_type": type(error).__name__,
                "error_message": str(error),
                **context,
            },
            exc_info=error,
        )

    def validate_non_negative_int(self, value: Any, name: str) -> None:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValidationError(
                name, f"{name} must be a non-negative integer, got {value}"
            )

    def validate_range(self, value: Any, name: str, min_val: int, max_val: int) -> None:
        if isinstance(value, bool) or not isinstance(value, int) or not (
            min_val <= value <= max_val
        ):
            raise ValidationError(
                name,
                f"{name} must be between {min_val} and {max_val}, got {value}",
            )
