"""
Time-of-day interval shared by availability, appointments and read models.

Intervals are half-open: ``[start, end)``. Two slots that merely touch
(``09:00-10:00`` and ``10:00-11:00``) do not overlap. An end time of
``00:00`` means end of day. Times are whole minutes; seconds are rejected
rather than truncated.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from typing import Iterable, List, Optional

from ..core.exceptions import InvalidRangeException, ValidationException
from ..utils.time_utils import (
    is_minute_aligned,
    minutes_to_time,
    minutes_to_time_str,
    time_to_minutes,
)


@dataclass(frozen=True)
class TimeSlot:
    start_time: time
    end_time: time

    def __post_init__(self) -> None:
        _require_whole_minutes(self.start_time, self.end_time)
        if self.start_minutes >= self.end_minutes:
            raise InvalidRangeException(self.start_time, self.end_time)

    @classmethod
    def from_minutes(cls, start: int, end: int) -> "TimeSlot":
        return cls(minutes_to_time(start), minutes_to_time(end))

    @classmethod
    def starting_at(cls, start_time: time, duration_minutes: int) -> "TimeSlot":
        """Slot of ``duration_minutes`` beginning at ``start_time``."""
        _require_whole_minutes(start_time)
        start = time_to_minutes(start_time)
        end = start + duration_minutes
        if duration_minutes <= 0 or end > 24 * 60:
            raise InvalidRangeException(start_time, minutes_to_time_str(min(end, 24 * 60)))
        return cls.from_minutes(start, end)

    @property
    def start_minutes(self) -> int:
        return time_to_minutes(self.start_time)

    @property
    def end_minutes(self) -> int:
        return time_to_minutes(self.end_time, is_end_time=True)

    def duration_minutes(self) -> int:
        return self.end_minutes - self.start_minutes

    def overlaps(self, other: "TimeSlot") -> bool:
        return self.start_minutes < other.end_minutes and other.start_minutes < self.end_minutes

    def contains(self, other: "TimeSlot") -> bool:
        return self.start_minutes <= other.start_minutes and self.end_minutes >= other.end_minutes

    def subtract(self, other: "TimeSlot") -> List["TimeSlot"]:
        """
        Remainders of this slot once ``other`` is removed from it.

        Returns zero, one or two slots in time order. Empty remainders are
        dropped, so carving a slot out of an identical slot returns ``[]``.
        """
        if not self.overlaps(other):
            return [self]
        remainders: List[TimeSlot] = []
        if other.start_minutes > self.start_minutes:
            remainders.append(TimeSlot.from_minutes(self.start_minutes, other.start_minutes))
        if other.end_minutes < self.end_minutes:
            remainders.append(TimeSlot.from_minutes(other.end_minutes, self.end_minutes))
        return remainders

    def sort_key(self) -> tuple[int, int]:
        return (self.start_minutes, self.end_minutes)

    def __str__(self) -> str:
        return f"{minutes_to_time_str(self.start_minutes)}-{minutes_to_time_str(self.end_minutes)}"


def _require_whole_minutes(*times: time) -> None:
    for t in times:
        if not is_minute_aligned(t):
            raise ValidationException(
                f"Time {t.isoformat()} must be a whole minute",
                code="TIME_NOT_WHOLE_MINUTE",
                details={"time": t.isoformat()},
            )

def sort_slots(slots: Iterable[TimeSlot]) -> tuple[TimeSlot, ...]:
    return tuple(sorted(slots, key=TimeSlot.sort_key))


def find_overlap(slots: Iterable[TimeSlot]) -> Optional[tuple[TimeSlot, TimeSlot]]:
    """First pair of overlapping slots in ``slots``, or None when disjoint."""
    ordered = sort_slots(slots)
    for previous, current in zip(ordered, ordered[1:]):
        if previous.overlaps(current):
            return previous, current
    return None


def merge_slots(slots: Iterable[TimeSlot]) -> tuple[TimeSlot, ...]:
    """Coalesce overlapping or touching slots into the minimal disjoint set."""
    merged: List[TimeSlot] = []
    for slot in sort_slots(slots):
        if merged and (merged[-1].overlaps(slot) or merged[-1].end_minutes == slot.start_minutes):
            last = merged.pop()
            merged.append(
                TimeSlot.from_minutes(last.start_minutes, max(last.end_minutes, slot.end_minutes))
            )
        else:
            merged.append(slot)
    return tuple(merged)
