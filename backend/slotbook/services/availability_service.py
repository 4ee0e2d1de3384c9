# backend/slotbook/services/availability_service.py
"""
Availability Service for the Slotbook engine.

Staff availability edits for one (staff, date): replace the whole slot
set, add one slot, remove one slot, or delete the day. Booked time has
already been carved out of availability, so the guard against orphaning
an appointment looks at the appointments themselves:

- set: every active appointment must fit inside one proposed slot
- remove: the removed slot must not overlap an active appointment
- delete: the day must have no active appointments

A day whose last slot is removed is deleted rather than kept empty.
"""

from datetime import date
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import AccessDeniedException, AvailabilityConflictException
from ..domain import Transition
from ..domain.appointment import Appointment
from ..domain.availability import StaffDailyAvailability
from ..events.availability_events import StaffDailyAvailabilityUpdated
from ..events.publisher import EventPublisher, publish_all
from ..repositories.factory import RepositoryFactory
from ..schemas.commands import (
    AddTimeSlot,
    DeleteAvailability,
    RemoveTimeSlot,
    SetStaffAvailability,
)
from .base import BaseService

logger = logging.getLogger(__name__)


class AvailabilityService(BaseService):
    """Write side of staff availability."""

    def __init__(self, db: Session, event_publisher: EventPublisher):
        super().__init__(db)
        self.event_publisher = event_publisher
        self.availability_repository = RepositoryFactory.create_availability_repository(db)
        self.appointment_repository = RepositoryFactory.create_appointment_repository(db)

    def get_availability(self, staff_id: str, on_date: date) -> Optional[StaffDailyAvailability]:
        return self.availability_repository.get_for_staff_on(staff_id, on_date)

    @BaseService.measure_operation("set_availability")
    def set_availability(
        self, command: SetStaffAvailability
    ) -> Optional[StaffDailyAvailability]:
        """
        Replace the day's slots.

        Raises AvailabilityConflictException, leaving the day untouched,
        when any active appointment would fall outside the new slots. An
        empty slot list deletes the day and returns None.
        """
        slots = command.to_slots()
        with self.transaction():
            active = self._active_appointments(command.staff_id, command.availability_date)
            orphaned = [
                a for a in active if not any(slot.contains(a.time_slot) for slot in slots)
            ]
            if orphaned:
                raise AvailabilityConflictException(
                    command.staff_id,
                    command.availability_date.isoformat(),
                    [a.id for a in orphaned],
                )

            current = self._get_or_new(
                command.staff_id, command.business_id, command.availability_date
            )
            transition = current.set_availability(slots)
            result = self._persist(transition)

        self.log_operation(
            "set_availability",
            staff_id=command.staff_id,
            availability_date=command.availability_date.isoformat(),
            slot_count=len(slots),
        )
        self._publish(transition)
        return result

    @BaseService.measure_operation("add_time_slot")
    def add_time_slot(self, command: AddTimeSlot) -> StaffDailyAvailability:
        """Add one slot, creating the day if needed; overlapping slots are rejected."""
        slot = command.to_slot()
        with self.transaction():
            current = self._get_or_new(
                command.staff_id, command.business_id, command.availability_date
            )
            transition = current.add_time_slot(slot)
            saved = self.availability_repository.save(transition.state)

        self.log_operation(
            "add_time_slot",
            staff_id=command.staff_id,
            availability_date=command.availability_date.isoformat(),
            slot=str(slot),
        )
        self._publish(transition)
        return saved

    @BaseService.measure_operation("remove_time_slot")
    def remove_time_slot(self, command: RemoveTimeSlot) -> Optional[StaffDailyAvailability]:
        """
        Remove the slot matching exactly, deleting the day when none remain.

        Returns None when there is no availability for the day or the last
        slot was removed. Removing a slot that is not present changes nothing.
        """
        slot = command.to_slot()
        with self.transaction():
            current = self.availability_repository.get_for_staff_on(
                command.staff_id, command.availability_date
            )
            if current is None:
                return None

            blocking = [
                a
                for a in self._active_appointments(command.staff_id, command.availability_date)
                if slot.overlaps(a.time_slot)
            ]
            if blocking:
                raise AvailabilityConflictException(
                    command.staff_id,
                    command.availability_date.isoformat(),
                    [a.id for a in blocking],
                )

            transition = current.remove_time_slot(slot)
            if not transition.changed:
                return current
            result = self._persist(transition)

        self.log_operation(
            "remove_time_slot",
            staff_id=command.staff_id,
            availability_date=command.availability_date.isoformat(),
            slot=str(slot),
        )
        self._publish(transition)
        return result

    @BaseService.measure_operation("delete_availability")
    def delete_availability(self, command: DeleteAvailability) -> bool:
        """Delete the whole day; refused while the day has active appointments."""
        with self.transaction():
            current = self.availability_repository.get_for_staff_on(
                command.staff_id, command.availability_date
            )
            if current is None:
                return False

            active = self._active_appointments(command.staff_id, command.availability_date)
            if active:
                raise AvailabilityConflictException(
                    command.staff_id,
                    command.availability_date.isoformat(),
                    [a.id for a in active],
                )
            self.availability_repository.delete(current)

        self.log_operation(
            "delete_availability",
            staff_id=command.staff_id,
            availability_date=command.availability_date.isoformat(),
        )
        self._publish(Transition(current, (self._cleared_event(current),)))
        return True

    # Helpers

    def _active_appointments(self, staff_id: str, on_date: date) -> List[Appointment]:
        return self.appointment_repository.find_for_staff_on(staff_id, on_date, active_only=True)

    def _get_or_new(
        self, staff_id: str, business_id: str, on_date: date
    ) -> StaffDailyAvailability:
        existing = self.availability_repository.get_for_staff_on(staff_id, on_date)
        if existing is not None:
            if existing.business_id != business_id:
                raise AccessDeniedException(
                    "Availability belongs to another business",
                    details={"business_id": business_id, "staff_id": staff_id},
                )
            return existing
        return StaffDailyAvailability.create(staff_id, business_id, on_date)

    def _persist(self, transition: Transition) -> Optional[StaffDailyAvailability]:
        availability: StaffDailyAvailability = transition.state
        if availability.is_empty:
            self.availability_repository.delete(availability)
            return None
        return self.availability_repository.save(availability)

    @staticmethod
    def _cleared_event(availability: StaffDailyAvailability) -> StaffDailyAvailabilityUpdated:
        return StaffDailyAvailabilityUpdated(
            availability_id=availability.id,
            staff_id=availability.staff_id,
            business_id=availability.business_id,
            availability_date=availability.availability_date,
            time_slots=(),
        )

    def _publish(self, transition: Transition) -> None:
        publish_all(self.event_publisher, transition.events)

