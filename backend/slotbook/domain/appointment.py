"""
Appointment aggregate and its status state machine.

    SCHEDULED -> CONFIRMED -> COMPLETED
                 CONFIRMED -> NO_SHOW
    SCHEDULED | CONFIRMED -> CANCELLED

Every transition returns ``Transition(new_appointment, events)``; an
illegal transition raises before anything is produced.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, time, timezone
from typing import Dict, FrozenSet, Optional, Type

from ..core.enums import AppointmentStatus
from ..core.exceptions import InvalidTransitionException, ValidationException
from ..core.ulid_helper import generate_ulid
from ..events.appointment_events import (
    AppointmentCancelled,
    AppointmentCompleted,
    AppointmentConfirmed,
    AppointmentEvent,
    AppointmentNoShow,
    AppointmentScheduled,
)
from . import Transition
from .time_slot import TimeSlot

ALLOWED_TRANSITIONS: Dict[AppointmentStatus, FrozenSet[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: frozenset(
        {AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.CONFIRMED: frozenset(
        {
            AppointmentStatus.COMPLETED,
            AppointmentStatus.NO_SHOW,
            AppointmentStatus.CANCELLED,
        }
    ),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.NO_SHOW: frozenset(),
}

MAX_NOTES_LENGTH = 1000


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Appointment:
    id: str
    business_id: str
    client_id: str
    staff_id: str
    service_id: str
    appointment_date: date
    start_time: time
    end_time: time
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        # Raises InvalidRangeException on start >= end
        TimeSlot(self.start_time, self.end_time)
        if self.notes is not None and len(self.notes) > MAX_NOTES_LENGTH:
            raise ValidationException(
                f"Notes must be at most {MAX_NOTES_LENGTH} characters",
                code="NOTES_TOO_LONG",
            )

    @classmethod
    def schedule(
        cls,
        business_id: str,
        client_id: str,
        staff_id: str,
        service_id: str,
        appointment_date: date,
        slot: TimeSlot,
        notes: Optional[str] = None,
        appointment_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Transition:
        """The only way to create an appointment; starts in SCHEDULED."""
        timestamp = now or _now_utc()
        appointment = cls(
            id=appointment_id or generate_ulid(),
            business_id=business_id,
            client_id=client_id,
            staff_id=staff_id,
            service_id=service_id,
            appointment_date=appointment_date,
            start_time=slot.start_time,
            end_time=slot.end_time,
            status=AppointmentStatus.SCHEDULED,
            notes=notes,
            created_at=timestamp,
            updated_at=timestamp,
        )
        return Transition(appointment, (appointment._event(AppointmentScheduled),))

    @property
    def time_slot(self) -> TimeSlot:
        return TimeSlot(self.start_time, self.end_time)

    @property
    def is_active(self) -> bool:
        """Non-cancelled appointments still occupy their time."""
        return self.status != AppointmentStatus.CANCELLED

    def can_transition_to(self, target: AppointmentStatus) -> bool:
        return target in ALLOWED_TRANSITIONS[self.status]

    def confirm(self, now: Optional[datetime] = None) -> Transition:
        return self._move(AppointmentStatus.CONFIRMED, "confirm", AppointmentConfirmed, now)

    def cancel(self, reason: Optional[str] = None, now: Optional[datetime] = None) -> Transition:
        """Cancel; a second cancel returns this appointment and no events."""
        if self.status == AppointmentStatus.CANCELLED:
            return Transition(self)
        self._require(AppointmentStatus.CANCELLED, "cancel")
        notes = self.notes
        if reason:
            line = f"Cancellation reason: {reason}"
            notes = f"{notes}\n{line}" if notes else line
        updated = replace(
            self,
            status=AppointmentStatus.CANCELLED,
            notes=notes[:MAX_NOTES_LENGTH] if notes else notes,
            updated_at=now or _now_utc(),
        )
        return Transition(updated, (updated._event(AppointmentCancelled, reason=reason),))

    def complete(self, now: Optional[datetime] = None) -> Transition:
        return self._move(AppointmentStatus.COMPLETED, "complete", AppointmentCompleted, now)

    def mark_no_show(self, now: Optional[datetime] = None) -> Transition:
        return self._move(AppointmentStatus.NO_SHOW, "mark as no-show", AppointmentNoShow, now)

    def _require(self, target: AppointmentStatus, action: str) -> None:
        if not self.can_transition_to(target):
            raise InvalidTransitionException(self.id, self.status.value, action)

    def _move(
        self,
        target: AppointmentStatus,
        action: str,
        event_type: Type[AppointmentEvent],
        now: Optional[datetime],
    ) -> Transition:
        self._require(target, action)
        updated = replace(self, status=target, updated_at=now or _now_utc())
        return Transition(updated, (updated._event(event_type),))

    def _event(self, event_type: Type[AppointmentEvent], **extra) -> AppointmentEvent:
        return event_type(
            appointment_id=self.id,
            business_id=self.business_id,
            client_id=self.client_id,
            staff_id=self.staff_id,
            service_id=self.service_id,
            appointment_date=self.appointment_date,
            start_time=self.start_time,
            end_time=self.end_time,
            **extra,
        )
