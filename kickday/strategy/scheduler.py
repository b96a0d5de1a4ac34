"""
Business-day trigger scheduling.

The kick-day check runs once per trading day at the cutoff time.  The
helpers here compute the first trigger from the start date and each
following trigger from the previous one, skipping Saturdays and
Sundays.  Day arithmetic is calendar arithmetic (`pandas.DateOffset`),
so a timezone-aware trigger keeps its wall-clock time across daylight
saving changes.
"""

from __future__ import annotations

from datetime import date, time
from typing import Optional
import pandas as pd

from ..utils.timeutils import at_time_of_day

SATURDAY = 5
SUNDAY = 6


def initial_trigger(today: date, cutoff: time, tz_name: Optional[str] = None) -> pd.Timestamp:
    """Return the first trigger for a strategy started on `today`.

    A weekend start is moved forward to Monday; on a weekday the trigger
    is today at the cutoff, even when that moment has already passed.
    """
    trigger = at_time_of_day(today, cutoff, tz_name)
    if trigger.weekday() == SATURDAY:
        trigger += pd.DateOffset(days=2)
    elif trigger.weekday() == SUNDAY:
        trigger += pd.DateOffset(days=1)
    return trigger


def next_trigger(previous: pd.Timestamp) -> pd.Timestamp:
    """Return the trigger following `previous`.

    The weekday checked is the one of ``previous + 1 day``: a Friday
    trigger is followed by Monday, a Saturday one (only reachable with a
    hand-made timestamp) by Monday as well.
    """
    candidate = previous + pd.DateOffset(days=1)
    if candidate.weekday() == SATURDAY:
        return previous + pd.DateOffset(days=3)
    if candidate.weekday() == SUNDAY:
        return previous + pd.DateOffset(days=2)
    return candidate


class BusinessDayScheduler:
    """Bind the trigger helpers to a cutoff time and timezone."""

    def __init__(self, cutoff: time, tz_name: Optional[str] = None) -> None:
        self.cutoff = cutoff
        self.tz_name = tz_name

    def initial_trigger(self, today: date) -> pd.Timestamp:
        return initial_trigger(today, self.cutoff, self.tz_name)

    def next_trigger(self, previous: pd.Timestamp) -> pd.Timestamp:
        return next_trigger(previous)
