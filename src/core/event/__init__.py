"""
Event subsystem: in-process pub/sub with tiered listener concurrency.
"""

from src.core.event.bus import EventBus
from src.core.event.registry import ListenerRegistry
from src.core.event.router import EventRouter
from src.core.event.scheduler import EventScheduler
from src.core.event.types import (
    CallbackType,
    EventListener,
    EventPayload,
    ListenerPriority,
)

__all__ = [
    "EventBus",
    "EventRouter",
    "EventScheduler",
    "ListenerRegistry",
    "EventListener",
    "EventPayload",
    "ListenerPriority",
    "CallbackType",
]
