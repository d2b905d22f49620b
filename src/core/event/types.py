"""
Event system type definitions.

Priority tiers
--------------
- CRITICAL (0): sequential, awaited, timeout-protected
- HIGH (10):    sequential, awaited, timeout-protected
- NORMAL (50):  concurrent (asyncio.gather), awaited
- LOW (100):    fire-and-forget background tasks

Cache invalidators subscribe at NORMAL so a publish returns only after every
domain has cleared its keys. Gamification fan-out (badges) subscribes at LOW.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

EventPayload = dict[str, Any]


class ListenerPriority(Enum):
    CRITICAL = 0
    HIGH = 10
    NORMAL = 50
    LOW = 100


CallbackType = Union[
    Callable[[EventPayload], Any],
    Callable[[EventPayload], Awaitable[Any]],
]


@dataclass(slots=True, frozen=True)
class EventListener:
    """
    A registered listener.

    `identifier` defaults to ``module.qualname@event_name`` and is what
    duplicate detection and `unsubscribe()` key on.
    """

    callback: CallbackType
    priority: ListenerPriority
    identifier: str

    @classmethod
    def from_callback(
        cls,
        event_name: str,
        callback: CallbackType,
        priority: ListenerPriority,
        identifier: Optional[str] = None,
    ) -> EventListener:
        if identifier is None:
            module = getattr(callback, "__module__", "unknown")
            qualname = getattr(
                callback, "__qualname__", getattr(callback, "__name__", "callback")
            )
            identifier = f"{module}.{qualname}@{event_name}"

        return cls(callback=callback, priority=priority, identifier=identifier)
