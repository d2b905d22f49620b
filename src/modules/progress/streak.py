"""
Streak calculation.

A streak is the number of consecutive clean days (no cigarettes) ending at
the most recent record, provided that record is from today or yesterday.
The function is pure: the caller supplies the history and "today".
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, Protocol


class StreakDay(Protocol):
    record_date: date
    cigarettes_smoked: int


def calculate_streak(records: Iterable[StreakDay], today: date) -> int:
    """
    Count consecutive clean days walking back from the most recent record.

    `records` must be ordered by `record_date` descending. The walk stops at
    the first record that is not clean or not on the expected day (a gap,
    or a duplicate of a day already counted). If the most recent record is
    older than yesterday the chain is already broken and the result is 0.
    """
    iterator = iter(records)
    first = next(iterator, None)
    if first is None:
        return 0

    most_recent = first.record_date
    if most_recent < today - timedelta(days=1):
        return 0

    streak = 0
    expected = most_recent
    for record in (first, *iterator):
        if record.record_date != expected or record.cigarettes_smoked != 0:
            break
        streak += 1
        expected -= timedelta(days=1)

    return streak
