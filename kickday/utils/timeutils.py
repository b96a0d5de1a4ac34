"""
Timezone and time-of-day utilities.

This module centralises all timezone handling.  The scheduler and the
runners use these helpers to build trigger timestamps from a date and
a configured time of day, always on the same exchange clock.
"""

from __future__ import annotations

from datetime import date, time
from typing import Optional
import pandas as pd


def parse_time_str(ts: str) -> time:
    """Parse a `HH:MM` string into a `datetime.time` object.

    Parameters
    ----------
    ts : str
        A string in 24‑hour format such as ``"18:35"``.

    Returns
    -------
    datetime.time
        The corresponding time.

    Raises
    ------
    ValueError
        If the string is not in ``HH:MM`` form or out of range.
    """
    parts = ts.strip().split(":")
    if len(parts) != 2:
        raise ValueError(f"Expected HH:MM, got {ts!r}")
    hour, minute = map(int, parts)
    return time(hour=hour, minute=minute)


def at_time_of_day(day: date, tod: time, tz_name: Optional[str] = None) -> pd.Timestamp:
    """Combine a calendar date with a time of day.

    The result is localised to `tz_name` when given, otherwise it is a
    naive timestamp on the ambient local clock.
    """
    ts = pd.Timestamp.combine(day, tod)
    if tz_name is not None:
        ts = ts.tz_localize(tz_name)
    return ts


def now(tz_name: Optional[str] = None) -> pd.Timestamp:
    """Current time on the exchange clock."""
    return pd.Timestamp.now(tz=tz_name)
