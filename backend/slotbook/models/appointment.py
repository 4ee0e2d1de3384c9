# backend/slotbook/models/appointment.py
"""
Appointment table.

Rows are the authoritative booking state. Two guards keep a staff
member from being double-booked when concurrent writers race past the
application-level overlap check:

- a partial unique index on (staff_id, appointment_date, start_time)
  over non-cancelled rows, enforced on every dialect;
- on PostgreSQL, the ``appointments_no_overlap_per_staff`` exclusion
  constraint installed by the migration, which also rejects partial
  overlaps.
"""

from datetime import datetime, timezone
import logging

from sqlalchemy import CheckConstraint, Column, Date, DateTime, Index, String, Text, Time, text
from sqlalchemy.sql import func

from ..core.enums import AppointmentStatus
from ..core.ulid_helper import generate_ulid
from ..database import Base

logger = logging.getLogger(__name__)

ACTIVE_APPOINTMENT_PREDICATE = "status <> 'CANCELLED'"


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class AppointmentRecord(Base):
    """Persisted appointment; mapped to and from the domain aggregate by its repository."""

    __tablename__ = "appointments"

    id = Column(String(26), primary_key=True, index=True, default=generate_ulid)

    business_id = Column(String(26), nullable=False, index=True)
    client_id = Column(String(26), nullable=False, index=True)
    staff_id = Column(String(26), nullable=False)
    service_id = Column(String(26), nullable=False)

    appointment_date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    status = Column(
        String(20), nullable=False, default=AppointmentStatus.SCHEDULED.value, index=True
    )
    notes = Column(Text, nullable=True)

    created_at = Column(
        DateTime(timezone=True), nullable=False, default=_now_utc, server_default=func.now()
    )
    updated_at = Column(DateTime(timezone=True), nullable=True, default=_now_utc, onupdate=_now_utc)

    __table_args__ = (
        CheckConstraint(
            "status IN ('SCHEDULED', 'CONFIRMED', 'COMPLETED', 'CANCELLED', 'NO_SHOW')",
            name="ck_appointments_status",
        ),
        Index("ix_appointments_staff_date", "staff_id", "appointment_date"),
        Index(
            "uq_appointments_staff_slot_active",
            "staff_id",
            "appointment_date",
            "start_time",
            unique=True,
            postgresql_where=text(ACTIVE_APPOINTMENT_PREDICATE),
            sqlite_where=text(ACTIVE_APPOINTMENT_PREDICATE),
        ),
        # SQLite stores times as text with microseconds; PostgreSQL only
        CheckConstraint(
            "CASE "
            "WHEN end_time = '00:00:00' AND start_time <> '00:00:00' THEN TRUE "
            "ELSE start_time < end_time "
            "END",
            name="check_appointment_time_order",
        ).ddl_if(dialect="postgresql"),
    )

    def __repr__(self) -> str:
        return (
            f"<AppointmentRecord {self.id}: staff={self.staff_id}, client={self.client_id}, "
            f"date={self.appointment_date}, time={self.start_time}-{self.end_time}, "
            f"status={self.status}>"
        )
