"""
Base domain model classes.

Purpose
-------
Shared building blocks for domain objects that live outside the ORM:

- `DomainEvent`: a named state change published on the EventBus so other
  modules can react without importing the module that changed state.

Domain objects are plain dataclasses. Services convert ORM rows into them
at the repository boundary and never hand ORM instances to callers or to
the cache.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict


@dataclass(frozen=True)
class DomainEvent:
    """
    A domain event that has occurred.

    Attributes
    ----------
    event_name : str
        Dotted event name (e.g., "progress_record.changed")
    payload : Dict[str, Any]
        Identifiers listeners need; kept JSON-serializable
    occurred_at : datetime
        When the event occurred (UTC)
    """

    event_name: str
    payload: Dict[str, Any]
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_bus_payload(self) -> Dict[str, Any]:
        return {**self.payload, "occurred_at": self.occurred_at.isoformat()}
