# backend/slotbook/core/enums.py
"""
Core enums for the Slotbook engine.

String-valued so they persist directly into status/role columns and
serialize cleanly into event payloads.
"""

from enum import Enum


class AppointmentStatus(str, Enum):
    """Lifecycle states of an appointment."""

    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"

    @property
    def is_terminal(self) -> bool:
        return self in (
            AppointmentStatus.COMPLETED,
            AppointmentStatus.CANCELLED,
            AppointmentStatus.NO_SHOW,
        )


class RequesterRole(str, Enum):
    """Who is issuing a command against an appointment."""

    CLIENT = "client"
    STAFF = "staff"
    BUSINESS = "business"


class SlotStepKind(str, Enum):
    """How bookable start times are laid out inside a free interval."""

    FIXED_GRID = "fixed_grid"
    SERVICE_DURATION = "service_duration"
