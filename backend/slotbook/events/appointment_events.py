"""Appointment domain events.

Each event carries the full slot identity so consumers never need to
reload the appointment to act on it.
"""
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, time, timezone
from typing import Any, Dict, Optional


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AppointmentEvent:
    """Identity tuple shared by every appointment event."""

    appointment_id: str
    business_id: str
    client_id: str
    staff_id: str
    service_id: str
    appointment_date: date
    start_time: time
    end_time: time
    occurred_at: datetime = field(default_factory=_now_utc)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AppointmentScheduled(AppointmentEvent):
    """Fired after an appointment is booked."""


@dataclass(frozen=True)
class AppointmentConfirmed(AppointmentEvent):
    """Fired after staff confirm an appointment."""


@dataclass(frozen=True)
class AppointmentCancelled(AppointmentEvent):
    """Fired after an appointment is cancelled."""

    reason: Optional[str] = None


@dataclass(frozen=True)
class AppointmentCompleted(AppointmentEvent):
    """Fired after an appointment is marked complete."""


@dataclass(frozen=True)
class AppointmentNoShow(AppointmentEvent):
    """Fired when the client did not show up for a confirmed appointment."""
