"""
modules/tool_usage/time_tool.py
--------------------------------
Clock-string ↔ minute-offset conversions used throughout the scheduler.

A clock string is "HH:MM" (hours 0-23, minutes 0-59).  Minute offsets count
from 00:00 of the same day; the scheduler never wraps past midnight.
"""

from __future__ import annotations

import re
from typing import Optional

from schemas.schedule import Location

_HHMM = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")

MINUTES_PER_DAY: int = 24 * 60
LAST_MINUTE_OF_DAY: int = MINUTES_PER_DAY - 1   # 23:59


class InvalidTimeFormatError(ValueError):
    """Raised for clock strings that are not a valid "HH:MM"."""


def to_minutes(clock: str) -> int:
    """Parse "HH:MM" into minutes since 00:00.  Rejects out-of-range fields."""
    if not isinstance(clock, str):
        raise InvalidTimeFormatError(
            f"ERROR_INVALID_TIME_FORMAT: expected 'HH:MM' string, got {clock!r}"
        )
    m = _HHMM.match(clock)
    if not m:
        raise InvalidTimeFormatError(f"ERROR_INVALID_TIME_FORMAT: {clock!r} is not 'HH:MM'")
    hours, minutes = int(m.group(1)), int(m.group(2))
    if hours > 23 or minutes > 59:
        raise InvalidTimeFormatError(
            f"ERROR_INVALID_TIME_FORMAT: {clock!r} is outside 00:00-23:59"
        )
    return hours * 60 + minutes


def to_clock(minutes: int) -> str:
    """Minutes since 00:00 → "HH:MM".  Hours wrap modulo 24."""
    minutes = int(minutes)
    if minutes < 0:
        raise ValueError(f"minute offset must be non-negative, got {minutes}")
    return f"{(minutes // 60) % 24:02d}:{minutes % 60:02d}"


def add_minutes(clock: str, duration: int) -> str:
    return to_clock(to_minutes(clock) + duration)


def optional_minutes(clock: Optional[str]) -> Optional[int]:
    """to_minutes() for optional fields; None and "" pass through as None."""
    if clock is None or clock == "":
        return None
    return to_minutes(clock)


def location_total_minutes(loc: Location) -> int:
    """Footprint of a location on site: setup + shooting + teardown."""
    return loc.buffer_before + loc.shooting_duration + loc.buffer_after
