"""
Listener storage and lookup for the EventBus.

Exact subscriptions live in a dict keyed by event name; wildcard
subscriptions are kept as (pattern, listener) pairs and matched with
`EventRouter` at publish time. Lookups return listeners sorted by
(priority, identifier) so execution order is deterministic.
"""

from __future__ import annotations

from typing import Optional

from src.core.event.router import EventRouter
from src.core.event.types import EventListener


def _order(listener: EventListener) -> tuple[int, str]:
    return (listener.priority.value, listener.identifier)


class ListenerRegistry:
    def __init__(self, router: Optional[EventRouter] = None) -> None:
        self._router = router or EventRouter()
        self._listeners: dict[str, list[EventListener]] = {}
        self._wildcard_listeners: list[tuple[str, EventListener]] = []

    def add_listener(
        self,
        event_name: str,
        listener: EventListener,
        *,
        allow_duplicates: bool = False,
    ) -> bool:
        """Register a listener; returns False when blocked as a duplicate."""
        if "*" in event_name:
            if not allow_duplicates and any(
                pattern == event_name and lst.identifier == listener.identifier
                for pattern, lst in self._wildcard_listeners
            ):
                return False
            self._wildcard_listeners.append((event_name, listener))
            self._wildcard_listeners.sort(key=lambda pair: _order(pair[1]))
            return True

        listeners = self._listeners.setdefault(event_name, [])
        if not allow_duplicates and any(
            lst.identifier == listener.identifier for lst in listeners
        ):
            return False

        listeners.append(listener)
        listeners.sort(key=_order)
        return True

    def remove_listener(self, event_name: str, identifier: str) -> bool:
        removed = False

        if event_name in self._listeners:
            before = len(self._listeners[event_name])
            self._listeners[event_name] = [
                lst for lst in self._listeners[event_name] if lst.identifier != identifier
            ]
            removed = len(self._listeners[event_name]) < before
            if not self._listeners[event_name]:
                del self._listeners[event_name]

        before_wc = len(self._wildcard_listeners)
        self._wildcard_listeners = [
            (pattern, lst)
            for pattern, lst in self._wildcard_listeners
            if not (pattern == event_name and lst.identifier == identifier)
        ]
        return removed or len(self._wildcard_listeners) < before_wc

    def clear_all(self) -> int:
        total = self.get_total_listener_count()
        self._listeners.clear()
        self._wildcard_listeners.clear()
        return total

    def listeners_for_event(self, event_name: str) -> list[EventListener]:
        """All exact and wildcard listeners that should receive `event_name`."""
        result = list(self._listeners.get(event_name, []))
        result.extend(
            lst
            for pattern, lst in self._wildcard_listeners
            if self._router.matches(event_name, pattern)
        )
        result.sort(key=_order)
        return result

    def get_total_listener_count(self) -> int:
        return sum(len(lst) for lst in self._listeners.values()) + len(
            self._wildcard_listeners
        )

    def get_all_event_keys(self) -> list[str]:
        keys = set(self._listeners)
        keys.update(pattern for pattern, _ in self._wildcard_listeners)
        return sorted(keys)
