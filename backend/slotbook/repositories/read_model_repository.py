"""
Read-model repositories.

Bookable slots and schedule rows are only ever replaced wholesale per
(staff, date); client appointment views are upserted per appointment.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import date, time
import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..core.ulid_helper import generate_ulid
from ..domain.slot_generation import BookableSlot, ScheduleEntry
from ..domain.time_slot import TimeSlot
from ..models.read_models import AvailableBookingSlot, ClientAppointmentView, StaffDailySchedule
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookableSlotRepository(BaseRepository[AvailableBookingSlot]):
    def __init__(self, db: Session):
        super().__init__(db, AvailableBookingSlot)

    def replace_for_staff_on(
        self, staff_id: str, on_date: date, rows: Iterable[BookableSlot]
    ) -> int:
        self.delete_for_staff_on(staff_id, on_date)
        return self.bulk_create([{"id": generate_ulid(), **asdict(row)} for row in rows])

    def delete_for_staff_on(self, staff_id: str, on_date: date) -> int:
        return self._delete(
            delete(AvailableBookingSlot).where(
                AvailableBookingSlot.staff_id == staff_id,
                AvailableBookingSlot.slot_date == on_date,
            )
        )

    def delete_overlapping(self, staff_id: str, on_date: date, slot: TimeSlot) -> int:
        """Drop offers that overlap ``slot``; used ahead of a full regeneration."""
        doomed = [
            row.id
            for row in self.find_for_staff(staff_id=staff_id, on_date=on_date)
            if TimeSlot(row.start_time, row.end_time).overlaps(slot)
        ]
        if not doomed:
            return 0
        return self._delete(delete(AvailableBookingSlot).where(AvailableBookingSlot.id.in_(doomed)))

    def delete_before(self, cutoff: date) -> int:
        return self._delete(
            delete(AvailableBookingSlot).where(AvailableBookingSlot.slot_date < cutoff)
        )

    def find_for_service(
        self,
        business_id: str,
        service_id: str,
        start_date: date,
        end_date: Optional[date] = None,
        staff_id: Optional[str] = None,
    ) -> List[AvailableBookingSlot]:
        """Offers for a service between two dates inclusive, ordered by date then time."""
        try:
            query = self.db.query(AvailableBookingSlot).filter(
                AvailableBookingSlot.business_id == business_id,
                AvailableBookingSlot.service_id == service_id,
                AvailableBookingSlot.slot_date >= start_date,
                AvailableBookingSlot.slot_date <= (end_date or start_date),
            )
            if staff_id is not None:
                query = query.filter(AvailableBookingSlot.staff_id == staff_id)
            return query.order_by(
                AvailableBookingSlot.slot_date,
                AvailableBookingSlot.start_time,
                AvailableBookingSlot.staff_id,
            ).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading slots for service {service_id}: {str(e)}")
            raise RepositoryException(f"Failed to load available slots: {str(e)}")

    def find_for_staff(
        self, staff_id: str, on_date: date, business_id: Optional[str] = None
    ) -> List[AvailableBookingSlot]:
        try:
            query = self.db.query(AvailableBookingSlot).filter(
                AvailableBookingSlot.staff_id == staff_id,
                AvailableBookingSlot.slot_date == on_date,
            )
            if business_id is not None:
                query = query.filter(AvailableBookingSlot.business_id == business_id)
            return query.order_by(
                AvailableBookingSlot.start_time, AvailableBookingSlot.service_id
            ).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading slots for staff {staff_id}: {str(e)}")
            raise RepositoryException(f"Failed to load available slots: {str(e)}")

    def find_one(
        self,
        business_id: str,
        staff_id: str,
        service_id: str,
        on_date: date,
        start_time: time,
    ) -> Optional[AvailableBookingSlot]:
        try:
            return (
                self.db.query(AvailableBookingSlot)
                .filter(
                    AvailableBookingSlot.business_id == business_id,
                    AvailableBookingSlot.staff_id == staff_id,
                    AvailableBookingSlot.service_id == service_id,
                    AvailableBookingSlot.slot_date == on_date,
                    AvailableBookingSlot.start_time == start_time,
                )
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading slot: {str(e)}")
            raise RepositoryException(f"Failed to load available slot: {str(e)}")

    def _delete(self, statement: Any) -> int:
        try:
            result = self.db.execute(statement, execution_options={"synchronize_session": False})
            return result.rowcount or 0
        except SQLAlchemyError as e:
            self.logger.error(f"Error deleting bookable slots: {str(e)}")
            raise RepositoryException(f"Failed to delete bookable slots: {str(e)}")


class StaffScheduleRepository(BaseRepository[StaffDailySchedule]):
    def __init__(self, db: Session):
        super().__init__(db, StaffDailySchedule)

    def replace_for_staff_on(
        self, staff_id: str, on_date: date, entries: Iterable[ScheduleEntry]
    ) -> int:
        self.delete_for_staff_on(staff_id, on_date)
        return self.bulk_create([{"id": generate_ulid(), **asdict(entry)} for entry in entries])

    def delete_for_staff_on(self, staff_id: str, on_date: date) -> int:
        return self._delete(
            delete(StaffDailySchedule).where(
                StaffDailySchedule.staff_id == staff_id,
                StaffDailySchedule.schedule_date == on_date,
            )
        )

    def delete_before(self, cutoff: date) -> int:
        return self._delete(
            delete(StaffDailySchedule).where(StaffDailySchedule.schedule_date < cutoff)
        )

    def find_for_staff_on(self, staff_id: str, on_date: date) -> List[StaffDailySchedule]:
        try:
            return (
                self.db.query(StaffDailySchedule)
                .filter(
                    StaffDailySchedule.staff_id == staff_id,
                    StaffDailySchedule.schedule_date == on_date,
                )
                .order_by(StaffDailySchedule.start_time)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading schedule for staff {staff_id}: {str(e)}")
            raise RepositoryException(f"Failed to load staff schedule: {str(e)}")

    def _delete(self, statement: Any) -> int:
        try:
            result = self.db.execute(statement, execution_options={"synchronize_session": False})
            return result.rowcount or 0
        except SQLAlchemyError as e:
            self.logger.error(f"Error deleting schedule rows: {str(e)}")
            raise RepositoryException(f"Failed to delete schedule rows: {str(e)}")


class ClientAppointmentViewRepository(BaseRepository[ClientAppointmentView]):
    def __init__(self, db: Session):
        super().__init__(db, ClientAppointmentView)

    def upsert(self, values: Dict[str, Any]) -> ClientAppointmentView:
        """Create or overwrite the view row whose id is ``values["id"]``."""
        view = self.get_by_id(values["id"])
        if view is None:
            return self.add(ClientAppointmentView(**values))
        for key, value in values.items():
            setattr(view, key, value)
        self.db.flush()
        return view

    def find_for_client(
        self, client_id: str, start_date: Optional[date] = None
    ) -> List[ClientAppointmentView]:
        try:
            query = self.db.query(ClientAppointmentView).filter(
                ClientAppointmentView.client_id == client_id
            )
            if start_date is not None:
                query = query.filter(ClientAppointmentView.appointment_date >= start_date)
            return query.order_by(
                ClientAppointmentView.appointment_date, ClientAppointmentView.start_time
            ).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading appointment views for {client_id}: {str(e)}")
            raise RepositoryException(f"Failed to load appointment views: {str(e)}")
