"""
Pure read-model generation.

Given one day's availability, that day's appointments and the catalog
data for the staff member, produce every bookable-slot row and every
staff-schedule row. Nothing here touches the database; the projector
deletes the old rows and persists whatever these functions return.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time
from decimal import Decimal
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

from ..core.enums import SlotStepKind
from .appointment import Appointment
from .availability import StaffDailyAvailability
from .time_slot import TimeSlot


class SlotStepPolicy:
    """
    Step used when laying out bookable start times inside a free interval.

    FIXED_GRID advances by ``grid_minutes`` regardless of service length;
    SERVICE_DURATION advances by the duration of the service being offered.
    """

    __slots__ = ("kind", "grid_minutes")

    def __init__(self, kind: SlotStepKind = SlotStepKind.FIXED_GRID, grid_minutes: int = 15):
        if grid_minutes <= 0:
            raise ValueError("grid_minutes must be positive")
        self.kind = SlotStepKind(kind)
        self.grid_minutes = grid_minutes

    def step_for(self, service_duration_minutes: int) -> int:
        if self.kind == SlotStepKind.SERVICE_DURATION:
            return service_duration_minutes
        return self.grid_minutes

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SlotStepPolicy):
            return NotImplemented
        return (self.kind, self.grid_minutes) == (other.kind, other.grid_minutes)

    def __hash__(self) -> int:
        return hash((self.kind, self.grid_minutes))

    def __repr__(self) -> str:
        return f"SlotStepPolicy(kind={self.kind.value!r}, grid_minutes={self.grid_minutes})"


@dataclass(frozen=True)
class ServiceOffering:
    """Catalog facts about a service that a staff member performs."""

    service_id: str
    name: str
    duration_minutes: int
    price: Optional[Decimal] = None


@dataclass(frozen=True)
class ProjectionCatalog:
    """Display data resolved before projection so generation stays pure."""

    services: Sequence[ServiceOffering]
    staff_name: str
    client_names: Mapping[str, str] = field(default_factory=dict)
    service_names: Mapping[str, str] = field(default_factory=dict)
    placeholder_client_name: str = "Client"
    placeholder_service_name: str = "Service"

    def client_name(self, client_id: str) -> str:
        return self.client_names.get(client_id) or self.placeholder_client_name

    def service_name(self, service_id: str) -> str:
        name = self.service_names.get(service_id)
        if name:
            return name
        for offering in self.services:
            if offering.service_id == service_id:
                return offering.name
        return self.placeholder_service_name


@dataclass(frozen=True)
class BookableSlot:
    business_id: str
    service_id: str
    staff_id: str
    slot_date: date
    start_time: time
    end_time: time
    service_duration_minutes: int
    service_name: str
    staff_name: str
    service_price: Optional[Decimal] = None

    @property
    def time_slot(self) -> TimeSlot:
        return TimeSlot(self.start_time, self.end_time)


@dataclass(frozen=True)
class ScheduleEntry:
    business_id: str
    staff_id: str
    schedule_date: date
    start_time: time
    end_time: time
    is_available: bool
    appointment_id: Optional[str] = None
    client_id: Optional[str] = None
    client_name: Optional[str] = None
    service_id: Optional[str] = None
    service_name: Optional[str] = None


Segment = Tuple[TimeSlot, Optional[Appointment]]


def split_free_and_booked(
    interval: TimeSlot, appointments: Iterable[Appointment]
) -> List[Segment]:
    """
    Sweep ``interval`` left to right, alternating free and booked pieces.

    Free pieces are ``(slot, None)``; booked pieces are ``(slot, appointment)``
    clipped to the interval. Cancelled appointments are ignored.
    """
    overlapping = sorted(
        (a for a in appointments if a.is_active and a.time_slot.overlaps(interval)),
        key=lambda a: a.time_slot.sort_key(),
    )
    segments: List[Segment] = []
    cursor = interval.start_minutes
    for appointment in overlapping:
        booked = appointment.time_slot
        booked_start = max(booked.start_minutes, cursor)
        booked_end = min(booked.end_minutes, interval.end_minutes)
        if booked_start > cursor:
            segments.append((TimeSlot.from_minutes(cursor, booked_start), None))
        if booked_end > booked_start:
            segments.append((TimeSlot.from_minutes(booked_start, booked_end), appointment))
        cursor = max(cursor, booked_end)
    if cursor < interval.end_minutes:
        segments.append((TimeSlot.from_minutes(cursor, interval.end_minutes), None))
    return segments


def free_intervals(
    availability: StaffDailyAvailability, appointments: Iterable[Appointment]
) -> List[TimeSlot]:
    """Availability minus non-cancelled appointments, in time order."""
    appointments = list(appointments)
    free: List[TimeSlot] = []
    for interval in availability.time_slots:
        free.extend(
            slot for slot, booked in split_free_and_booked(interval, appointments) if not booked
        )
    return free


def candidate_starts(
    interval: TimeSlot, duration_minutes: int, step_minutes: int
) -> List[TimeSlot]:
    """Every slot of ``duration_minutes`` that fits in ``interval`` on the step grid."""
    if duration_minutes <= 0 or step_minutes <= 0:
        return []
    slots: List[TimeSlot] = []
    start = interval.start_minutes
    while start + duration_minutes <= interval.end_minutes:
        slots.append(TimeSlot.from_minutes(start, start + duration_minutes))
        start += step_minutes
    return slots


def generate_booking_slots(
    availability: Optional[StaffDailyAvailability],
    appointments: Iterable[Appointment],
    catalog: ProjectionCatalog,
    step_policy: SlotStepPolicy,
) -> List[BookableSlot]:
    """Materialize availability x eligible services into bookable rows."""
    if availability is None or not catalog.services:
        return []
    free = free_intervals(availability, appointments)
    rows: List[BookableSlot] = []
    for offering in catalog.services:
        step = step_policy.step_for(offering.duration_minutes)
        for interval in free:
            for slot in candidate_starts(interval, offering.duration_minutes, step):
                rows.append(
                    BookableSlot(
                        business_id=availability.business_id,
                        service_id=offering.service_id,
                        staff_id=availability.staff_id,
                        slot_date=availability.availability_date,
                        start_time=slot.start_time,
                        end_time=slot.end_time,
                        service_duration_minutes=offering.duration_minutes,
                        service_name=offering.name,
                        staff_name=catalog.staff_name,
                        service_price=offering.price,
                    )
                )
    return rows


def build_schedule(
    availability: Optional[StaffDailyAvailability],
    appointments: Iterable[Appointment],
    catalog: ProjectionCatalog,
) -> List[ScheduleEntry]:
    """
    The staff member's day: free pieces plus one row per active appointment.

    Booked time has usually been carved out of availability already, so
    booked rows come from the appointments themselves rather than from
    the sweep.
    """
    if availability is None:
        return []
    active = [a for a in appointments if a.is_active]
    entries: List[ScheduleEntry] = [
        ScheduleEntry(
            business_id=availability.business_id,
            staff_id=availability.staff_id,
            schedule_date=availability.availability_date,
            start_time=slot.start_time,
            end_time=slot.end_time,
            is_available=True,
        )
        for slot in free_intervals(availability, active)
    ]
    for appointment in active:
        entries.append(
            ScheduleEntry(
                business_id=availability.business_id,
                staff_id=availability.staff_id,
                schedule_date=availability.availability_date,
                start_time=appointment.start_time,
                end_time=appointment.end_time,
                is_available=False,
                appointment_id=appointment.id,
                client_id=appointment.client_id,
                client_name=catalog.client_name(appointment.client_id),
                service_id=appointment.service_id,
                service_name=catalog.service_name(appointment.service_id),
            )
        )
    entries.sort(key=lambda e: TimeSlot(e.start_time, e.end_time).sort_key())
    return entries
