# backend/slotbook/repositories/factory.py
"""
Repository Factory for the Slotbook engine.

Provides centralized creation of repository instances so services can
be handed fakes in tests without knowing constructor details.
"""

from sqlalchemy.orm import Session

from .appointment_repository import AppointmentRepository
from .availability_repository import AvailabilityRepository
from .read_model_repository import (
    BookableSlotRepository,
    ClientAppointmentViewRepository,
    StaffScheduleRepository,
)


class RepositoryFactory:
    """Factory class for creating repository instances."""

    @staticmethod
    def create_appointment_repository(db: Session) -> AppointmentRepository:
        return AppointmentRepository(db)

    @staticmethod
    def create_availability_repository(db: Session) -> AvailabilityRepository:
        return AvailabilityRepository(db)

    @staticmethod
    def create_bookable_slot_repository(db: Session) -> BookableSlotRepository:
        return BookableSlotRepository(db)

    @staticmethod
    def create_staff_schedule_repository(db: Session) -> StaffScheduleRepository:
        return StaffScheduleRepository(db)

    @staticmethod
    def create_client_appointment_view_repository(db: Session) -> ClientAppointmentViewRepository:
        return ClientAppointmentViewRepository(db)
