# backend/slotbook/repositories/appointment_repository.py
"""
Appointment Repository.

Maps AppointmentRecord rows to the immutable Appointment aggregate and
back. Query helpers cover the booking overlap pre-check, the projector's
per-day load, and the client and staff appointment listings.
"""

from datetime import date
import logging
from typing import List, Optional

from sqlalchemy import and_
from sqlalchemy.exc import SQLAlchemyError

from ..core.enums import AppointmentStatus
from ..core.exceptions import RepositoryException
from ..domain.appointment import Appointment
from ..domain.time_slot import TimeSlot
from ..models.appointment import AppointmentRecord
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class AppointmentRepository(BaseRepository[AppointmentRecord]):
    """Data access for appointments."""

    def __init__(self, db):
        super().__init__(db, AppointmentRecord)

    # Mapping

    @staticmethod
    def to_domain(record: AppointmentRecord) -> Appointment:
        return Appointment(
            id=record.id,
            business_id=record.business_id,
            client_id=record.client_id,
            staff_id=record.staff_id,
            service_id=record.service_id,
            appointment_date=record.appointment_date,
            start_time=record.start_time,
            end_time=record.end_time,
            status=AppointmentStatus(record.status),
            notes=record.notes,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    # Commands

    def add(self, appointment: Appointment) -> Appointment:  # type: ignore[override]
        """Insert a newly scheduled appointment and flush so constraints fire now."""
        record = AppointmentRecord(
            id=appointment.id,
            business_id=appointment.business_id,
            client_id=appointment.client_id,
            staff_id=appointment.staff_id,
            service_id=appointment.service_id,
            appointment_date=appointment.appointment_date,
            start_time=appointment.start_time,
            end_time=appointment.end_time,
            status=appointment.status.value,
            notes=appointment.notes,
            created_at=appointment.created_at,
            updated_at=appointment.updated_at,
        )
        super().add(record)
        return self.to_domain(record)

    def save(self, appointment: Appointment) -> Appointment:
        """Write back the mutable part of an existing appointment."""
        record = self.get_by_id(appointment.id)
        if record is None:
            raise RepositoryException(f"Appointment {appointment.id} does not exist")
        try:
            record.status = appointment.status.value
            record.notes = appointment.notes
            record.updated_at = appointment.updated_at
            self.db.flush()
        except SQLAlchemyError as e:
            self.logger.error(f"Error updating appointment {appointment.id}: {str(e)}")
            raise RepositoryException(f"Failed to update appointment: {str(e)}")
        return self.to_domain(record)

    # Queries

    def get(self, appointment_id: str) -> Optional[Appointment]:
        """Fresh read; rows cached in the session are refreshed from the database."""
        try:
            record = self.db.get(AppointmentRecord, appointment_id, populate_existing=True)
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading appointment {appointment_id}: {str(e)}")
            raise RepositoryException(f"Failed to load appointment: {str(e)}")
        return self.to_domain(record) if record else None

    def find_for_staff_on(
        self, staff_id: str, on_date: date, *, active_only: bool = False
    ) -> List[Appointment]:
        try:
            query = self.db.query(AppointmentRecord).filter(
                AppointmentRecord.staff_id == staff_id,
                AppointmentRecord.appointment_date == on_date,
            )
            if active_only:
                query = query.filter(AppointmentRecord.status != AppointmentStatus.CANCELLED.value)
            records = query.order_by(AppointmentRecord.start_time).all()
            return [self.to_domain(r) for r in records]
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading appointments for staff {staff_id}: {str(e)}")
            raise RepositoryException(f"Failed to load staff appointments: {str(e)}")

    def find_overlapping(self, staff_id: str, on_date: date, slot: TimeSlot) -> List[Appointment]:
        """
        Non-cancelled appointments of ``staff_id`` on ``on_date`` overlapping ``slot``.

        Filtering happens in Python because an end time of 00:00 means
        end of day and does not compare correctly in SQL.
        """
        return [
            a
            for a in self.find_for_staff_on(staff_id, on_date, active_only=True)
            if a.time_slot.overlaps(slot)
        ]

    def find_for_client(self, client_id: str) -> List[Appointment]:
        return self._find_for_client(client_id)

    def find_for_client_between(
        self, client_id: str, start_date: date, end_date: date
    ) -> List[Appointment]:
        return self._find_for_client(client_id, start_date=start_date, end_date=end_date)

    def find_upcoming_for_client(self, client_id: str, from_date: date) -> List[Appointment]:
        """Active appointments on or after ``from_date``, soonest first."""
        return [
            a
            for a in self._find_for_client(client_id, start_date=from_date)
            if a.status in (AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED)
        ]

    def _find_for_client(
        self,
        client_id: str,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Appointment]:
        try:
            conditions = [AppointmentRecord.client_id == client_id]
            if start_date is not None:
                conditions.append(AppointmentRecord.appointment_date >= start_date)
            if end_date is not None:
                conditions.append(AppointmentRecord.appointment_date <= end_date)
            records = (
                self.db.query(AppointmentRecord)
                .filter(and_(*conditions))
                .order_by(AppointmentRecord.appointment_date, AppointmentRecord.start_time)
                .all()
            )
            return [self.to_domain(r) for r in records]
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading appointments for client {client_id}: {str(e)}")
            raise RepositoryException(f"Failed to load client appointments: {str(e)}")
