# backend/slotbook/repositories/__init__.py
"""
Repository layer for the Slotbook engine.

Key Components:
- BaseRepository: shared query helpers, no commits
- AppointmentRepository: appointment rows <-> Appointment aggregate
- AvailabilityRepository: per-day availability rows with optimistic versioning
- BookableSlotRepository / StaffScheduleRepository / ClientAppointmentViewRepository:
  read-model tables rebuilt by the projector
- RepositoryFactory: central construction point used by services

Usage:
    from slotbook.repositories import RepositoryFactory

    repository = RepositoryFactory.create_appointment_repository(db)
    appointments = repository.find_for_staff_on(staff_id, day, active_only=True)
"""

from .appointment_repository import AppointmentRepository
from .availability_repository import AvailabilityRepository
from .base_repository import BaseRepository
from .factory import RepositoryFactory
from .read_model_repository import (
    BookableSlotRepository,
    ClientAppointmentViewRepository,
    StaffScheduleRepository,
)

__all__ = [
    "AppointmentRepository",
    "AvailabilityRepository",
    "BaseRepository",
    "BookableSlotRepository",
    "ClientAppointmentViewRepository",
    "RepositoryFactory",
    "StaffScheduleRepository",
]
