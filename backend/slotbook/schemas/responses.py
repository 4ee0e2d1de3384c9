"""Outbound DTOs returned by the query and application services."""

from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field

from ..core.enums import AppointmentStatus
from ._strict_base import StrictModel


class AlternativeSlot(StrictModel):
    """A bookable offer suggested when the requested one is gone."""

    model_config = ConfigDict(extra="forbid", from_attributes=True)

    slot_date: date
    start_time: time
    end_time: time
    staff_id: str
    staff_name: Optional[str] = None

    def to_detail(self) -> Dict[str, str]:
        detail = {
            "date": self.slot_date.isoformat(),
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "staff_id": self.staff_id,
        }
        if self.staff_name:
            detail["staff_name"] = self.staff_name
        return detail


class AvailableSlot(StrictModel):
    model_config = ConfigDict(extra="forbid", from_attributes=True)

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


class AppointmentView(StrictModel):
    """Appointment joined with display names for clients and staff."""

    id: str
    business_id: str
    business_name: str
    client_id: str
    client_name: str
    staff_id: str
    staff_name: str
    service_id: str
    service_name: str
    appointment_date: date
    start_time: time
    end_time: time
    status: AppointmentStatus
    notes: Optional[str] = None
    price: Optional[Decimal] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ClientAppointments(StrictModel):
    upcoming: List[AppointmentView] = Field(default_factory=list)
    past: List[AppointmentView] = Field(default_factory=list)


class BookingOutcome(str, Enum):
    SUCCESS = "success"
    SLOT_UNAVAILABLE = "slot_unavailable"
    VALIDATION_ERROR = "validation_error"
    SYSTEM_ERROR = "system_error"


class BookingResult(StrictModel):
    """Exception-free booking result for callers that branch on outcome."""

    outcome: BookingOutcome
    appointment: Optional[AppointmentView] = None
    message: Optional[str] = None
    error_code: Optional[str] = None
    alternatives: List[AlternativeSlot] = Field(default_factory=list)
    details: Dict[str, Any] = Field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.outcome == BookingOutcome.SUCCESS
