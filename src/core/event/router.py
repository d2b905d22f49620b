"""
Wildcard matching for event names.

Patterns use ``*`` as "any run of characters":

- ``progress_record.changed`` matches only itself
- ``progress_record.*`` matches every progress record event
- ``*.changed`` matches ``progress_record.changed``, ``plan.changed``
- ``*`` matches everything

Matching is case-sensitive.
"""

from __future__ import annotations


class EventRouter:
    """Stateless matcher; one instance can be shared freely."""

    def matches(self, event_name: str, pattern: str) -> bool:
        if pattern == "*":
            return True

        if "*" not in pattern:
            return event_name == pattern

        while "**" in pattern:
            pattern = pattern.replace("**", "*")

        parts = pattern.split("*")
        head, tail = parts[0], parts[-1]

        if head and not event_name.startswith(head):
            return False
        if tail and not event_name.endswith(tail):
            return False
        if len(head) + len(tail) > len(event_name):
            return False

        # Middle fragments must appear in order between head and tail.
        idx = len(head)
        limit = len(event_name) - len(tail)
        for mid in parts[1:-1]:
            if not mid:
                continue
            found = event_name.find(mid, idx, limit)
            if found == -1:
                return False
            idx = found + len(mid)

        return True
