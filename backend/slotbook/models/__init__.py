# backend/slotbook/models/__init__.py
"""
SQLAlchemy models for the Slotbook engine.

Importing this package registers every table on ``Base.metadata`` so
Alembic autogenerate and ``create_all`` see the full schema.
"""

from .appointment import AppointmentRecord
from .availability import StaffAvailabilityDay
from .read_models import AvailableBookingSlot, ClientAppointmentView, StaffDailySchedule

__all__ = [
    "AppointmentRecord",
    "AvailableBookingSlot",
    "ClientAppointmentView",
    "StaffAvailabilityDay",
    "StaffDailySchedule",
]
