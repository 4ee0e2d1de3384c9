"""
Inbound commands.

Every command that acts on an existing appointment carries who is
asking, so services never read identity from ambient state.
"""

from datetime import date, time
from typing import List, Optional

from pydantic import Field, field_validator

from ..core.enums import RequesterRole
from ..domain.time_slot import TimeSlot
from ._strict_base import StrictRequestModel


def _parse_time(v: object) -> object:
    """Accept HH:MM strings as well as time objects."""
    if isinstance(v, str):
        try:
            hour, minute = v.split(":")[:2]
            return time(int(hour), int(minute))
        except (ValueError, AttributeError):
            raise ValueError(f"Invalid time format: {v}. Expected HH:MM format.")
    return v


class TimeRange(StrictRequestModel):
    start_time: time
    end_time: time

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def parse_time_string(cls, v: object) -> object:
        return _parse_time(v)

    def to_slot(self) -> TimeSlot:
        """Raises InvalidRangeException when start is not before end."""
        return TimeSlot(self.start_time, self.end_time)


class BookAppointment(StrictRequestModel):
    business_id: str = Field(..., description="Business the appointment belongs to")
    client_id: str = Field(..., description="Client making the booking")
    staff_id: str = Field(..., description="Staff member to book")
    service_id: str = Field(..., description="Service being booked")
    appointment_date: date
    start_time: time
    notes: Optional[str] = Field(None, max_length=1000, description="Optional note from client")

    @field_validator("start_time", mode="before")
    @classmethod
    def parse_time_string(cls, v: object) -> object:
        return _parse_time(v)


class CancelAppointment(StrictRequestModel):
    appointment_id: str
    requester_id: str = Field(..., description="Client, staff or business id of the caller")
    requester_role: RequesterRole = RequesterRole.CLIENT
    reason: Optional[str] = Field(None, max_length=500)


class AppointmentCommand(StrictRequestModel):
    """Staff-side status change; ``staff_id`` is enforced when given."""

    appointment_id: str
    staff_id: Optional[str] = None


class ConfirmAppointment(AppointmentCommand):
    pass


class CompleteAppointment(AppointmentCommand):
    pass


class MarkNoShow(AppointmentCommand):
    pass


class AvailabilityCommand(StrictRequestModel):
    staff_id: str
    business_id: str
    availability_date: date


class SetStaffAvailability(AvailabilityCommand):
    time_slots: List[TimeRange] = Field(default_factory=list)

    def to_slots(self) -> List[TimeSlot]:
        return [r.to_slot() for r in self.time_slots]


class AddTimeSlot(AvailabilityCommand):
    start_time: time
    end_time: time

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def parse_time_string(cls, v: object) -> object:
        return _parse_time(v)

    def to_slot(self) -> TimeSlot:
        return TimeSlot(self.start_time, self.end_time)


class RemoveTimeSlot(AddTimeSlot):
    pass


class DeleteAvailability(AvailabilityCommand):
    pass
