from __future__ import annotations

from datetime import time

MINUTES_PER_DAY = 24 * 60


def time_to_minutes(t: time, *, is_end_time: bool = False) -> int:
    """
    Convert time to minutes since midnight.

    Args:
        t: Time object.
        is_end_time: If True, treat time(0, 0) as 1440 (end of day).

    Returns:
        Minutes since midnight (0-1440).
    """
    minutes = t.hour * 60 + t.minute
    if is_end_time and minutes == 0:
        return MINUTES_PER_DAY
    return minutes


def is_minute_aligned(t: time) -> bool:
    """True when ``t`` has no seconds or microseconds."""
    return t.second == 0 and t.microsecond == 0


def minutes_to_time(minutes: int) -> time:
    """
    Convert minutes since midnight back to a time.

    1440 maps to time(0, 0), the end-of-day sentinel accepted by
    ``time_to_minutes(..., is_end_time=True)``.
    """
    if not 0 <= minutes <= MINUTES_PER_DAY:
        raise ValueError(f"minutes out of range: {minutes}")
    if minutes == MINUTES_PER_DAY:
        return time(0, 0)
    return time(minutes // 60, minutes % 60)


def minutes_to_time_str(minutes: int) -> str:
    """
    Convert minutes since midnight to HH:MM.

    1440 is rendered as "24:00".
    """
    if not 0 <= minutes <= MINUTES_PER_DAY:
        raise ValueError(f"minutes out of range: {minutes}")
    if minutes == MINUTES_PER_DAY:
        return "24:00"
    return f"{minutes // 60:02d}:{minutes % 60:02d}"
