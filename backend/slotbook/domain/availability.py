"""
StaffDailyAvailability aggregate.

Holds the free intervals a staff member offers on one calendar date.
Booked time is carved out of these intervals, so ``is_available`` is a
scan over a handful of slots rather than a join against appointments.
All operations return a :class:`~slotbook.domain.Transition` and leave
the original instance untouched.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Iterable, Optional, Tuple

from ..core.exceptions import SlotOverlapException
from ..core.ulid_helper import generate_ulid
from ..events.availability_events import StaffDailyAvailabilityUpdated
from . import Transition
from .time_slot import TimeSlot, find_overlap, merge_slots, sort_slots


@dataclass(frozen=True)
class StaffDailyAvailability:
    id: str
    staff_id: str
    business_id: str
    availability_date: date
    time_slots: Tuple[TimeSlot, ...] = ()
    # Stored row version this state was loaded from; None until first saved
    version: Optional[int] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        ordered = sort_slots(self.time_slots)
        clash = find_overlap(ordered)
        if clash:
            raise SlotOverlapException(
                str(clash[1]), str(clash[0]), self.availability_date.isoformat()
            )
        object.__setattr__(self, "time_slots", ordered)

    @classmethod
    def create(
        cls,
        staff_id: str,
        business_id: str,
        availability_date: date,
        time_slots: Iterable[TimeSlot] = (),
        availability_id: Optional[str] = None,
    ) -> "StaffDailyAvailability":
        return cls(
            id=availability_id or generate_ulid(),
            staff_id=staff_id,
            business_id=business_id,
            availability_date=availability_date,
            time_slots=tuple(time_slots),
        )

    @property
    def is_empty(self) -> bool:
        return not self.time_slots

    def is_available(self, slot: TimeSlot) -> bool:
        return any(existing.contains(slot) for existing in self.time_slots)

    def containing_slot(self, slot: TimeSlot) -> Optional[TimeSlot]:
        for existing in self.time_slots:
            if existing.contains(slot):
                return existing
        return None

    def add_time_slot(self, slot: TimeSlot) -> Transition:
        for existing in self.time_slots:
            if existing.overlaps(slot):
                raise SlotOverlapException(
                    str(slot), str(existing), self.availability_date.isoformat()
                )
        return self._changed(self.time_slots + (slot,))

    def remove_time_slot(self, slot: TimeSlot) -> Transition:
        if slot not in self.time_slots:
            return Transition(self)
        return self._changed(tuple(s for s in self.time_slots if s != slot))

    def set_availability(self, slots: Iterable[TimeSlot]) -> Transition:
        """
        Replace the whole slot set.

        Appointment protection happens in the calling service; this only
        rejects a proposed set that overlaps itself.
        """
        return self._changed(tuple(slots))

    def apply_appointment(self, slot: TimeSlot) -> Transition:
        """
        Carve ``slot`` out of the free interval that contains it.

        The containing interval is replaced by its before/after remainders.
        When no interval contains ``slot`` the state is returned unchanged
        with no events; callers check ``is_available`` first.
        """
        container = self.containing_slot(slot)
        if container is None:
            return Transition(self)
        remaining = tuple(s for s in self.time_slots if s != container)
        return self._changed(remaining + tuple(container.subtract(slot)))

    def release_appointment(self, slot: TimeSlot) -> Transition:
        """Give booked time back, merging it with any touching free interval."""
        return self._changed(merge_slots(self.time_slots + (slot,)))

    def _changed(self, slots: Tuple[TimeSlot, ...]) -> Transition:
        updated = replace(self, time_slots=slots)
        event = StaffDailyAvailabilityUpdated(
            availability_id=updated.id,
            staff_id=updated.staff_id,
            business_id=updated.business_id,
            availability_date=updated.availability_date,
            time_slots=tuple(
                (s.start_time.isoformat(), s.end_time.isoformat()) for s in updated.time_slots
            ),
        )
        return Transition(updated, (event,))
