"""
Repository for per-day staff availability.

Writes are compare-and-swap on the row version the domain object was
loaded with. A concurrent write to the same (staff, date) that committed
in between leaves no row at that version, and the losing write raises
StaleDataError instead of overwriting it.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, time
import logging
from typing import List, Optional, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..core.exceptions import RepositoryException
from ..domain.availability import StaffDailyAvailability
from ..domain.time_slot import TimeSlot
from ..models.availability import StaffAvailabilityDay
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


def serialize_slots(slots: Sequence[TimeSlot]) -> List[List[str]]:
    return [[s.start_time.isoformat(), s.end_time.isoformat()] for s in slots]


def deserialize_slots(raw: Optional[Sequence[Sequence[str]]]) -> tuple[TimeSlot, ...]:
    return tuple(
        TimeSlot(time.fromisoformat(start), time.fromisoformat(end)) for start, end in raw or ()
    )


class AvailabilityRepository(BaseRepository[StaffAvailabilityDay]):
    def __init__(self, db: Session):
        super().__init__(db, StaffAvailabilityDay)

    @staticmethod
    def to_domain(row: StaffAvailabilityDay) -> StaffDailyAvailability:
        return StaffDailyAvailability(
            id=row.id,
            staff_id=row.staff_id,
            business_id=row.business_id,
            availability_date=row.availability_date,
            time_slots=deserialize_slots(row.time_slots),
            version=row.version,
        )

    def _row_for(self, staff_id: str, on_date: date) -> Optional[StaffAvailabilityDay]:
        try:
            return (
                self.db.query(StaffAvailabilityDay)
                .filter(
                    StaffAvailabilityDay.staff_id == staff_id,
                    StaffAvailabilityDay.availability_date == on_date,
                )
                .populate_existing()
                .one_or_none()
            )
        except SQLAlchemyError as exc:
            self.logger.error("Error loading availability for %s on %s: %s", staff_id, on_date, exc)
            raise RepositoryException(f"Failed to load availability: {exc}") from exc

    def get_for_staff_on(self, staff_id: str, on_date: date) -> Optional[StaffDailyAvailability]:
        row = self._row_for(staff_id, on_date)
        return self.to_domain(row) if row else None

    def save(self, availability: StaffDailyAvailability) -> StaffDailyAvailability:
        """
        Insert a new day or write back a loaded one.

        A day without a version is inserted. A loaded day is only written
        while the stored row still carries the version it was loaded with.

        Returns:
            ``availability`` carrying its new version

        Raises:
            StaleDataError: Another transaction wrote the day in between
            IntegrityError: A new day collides with an existing (staff, date)
        """
        if availability.version is None:
            row = StaffAvailabilityDay(
                id=availability.id,
                staff_id=availability.staff_id,
                business_id=availability.business_id,
                availability_date=availability.availability_date,
                time_slots=serialize_slots(availability.time_slots),
            )
            super().add(row)
            return replace(availability, version=row.version)

        result = self.db.execute(
            update(self._table)
            .where(
                self._table.c.id == availability.id,
                self._table.c.version == availability.version,
            )
            .values(
                time_slots=serialize_slots(availability.time_slots),
                version=availability.version + 1,
            )
        )
        if result.rowcount != 1:
            raise self._stale(availability)
        return replace(availability, version=availability.version + 1)

    def delete(self, availability: StaffDailyAvailability) -> bool:
        """
        Delete the day; a loaded day is only deleted at its loaded version.

        Returns False when there is no such row.
        """
        statement = delete(self._table).where(self._table.c.id == availability.id)
        if availability.version is not None:
            statement = statement.where(self._table.c.version == availability.version)
        if self.db.execute(statement).rowcount == 1:
            return True
        if availability.version is not None and self._exists(availability.id):
            raise self._stale(availability)
        return False

    @property
    def _table(self):
        return StaffAvailabilityDay.__table__

    def _exists(self, availability_id: str) -> bool:
        found = self.db.execute(
            select(self._table.c.id).where(self._table.c.id == availability_id)
        ).first()
        return found is not None

    def _stale(self, availability: StaffDailyAvailability) -> StaleDataError:
        self.logger.info(
            "Availability for %s on %s changed since version %s was read",
            availability.staff_id,
            availability.availability_date,
            availability.version,
        )
        return StaleDataError(
            f"staff_daily_availability {availability.id} is no longer at "
            f"version {availability.version}"
        )

    def find_for_business_between(
        self, business_id: str, start_date: date, end_date: date
    ) -> List[StaffDailyAvailability]:
        try:
            rows = (
                self.db.query(StaffAvailabilityDay)
                .filter(
                    StaffAvailabilityDay.business_id == business_id,
                    StaffAvailabilityDay.availability_date >= start_date,
                    StaffAvailabilityDay.availability_date <= end_date,
                )
                .order_by(StaffAvailabilityDay.availability_date, StaffAvailabilityDay.staff_id)
                .all()
            )
        except SQLAlchemyError as exc:
            self.logger.error("Error loading availability for business %s: %s", business_id, exc)
            raise RepositoryException(f"Failed to load business availability: {exc}") from exc
        return [self.to_domain(r) for r in rows]

    def find_for_staff_from(self, staff_id: str, from_date: date) -> List[StaffDailyAvailability]:
        try:
            rows = (
                self.db.query(StaffAvailabilityDay)
                .filter(
                    StaffAvailabilityDay.staff_id == staff_id,
                    StaffAvailabilityDay.availability_date >= from_date,
                )
                .order_by(StaffAvailabilityDay.availability_date)
                .all()
            )
        except SQLAlchemyError as exc:
            self.logger.error("Error loading availability for staff %s: %s", staff_id, exc)
            raise RepositoryException(f"Failed to load staff availability: {exc}") from exc
        return [self.to_domain(r) for r in rows]
