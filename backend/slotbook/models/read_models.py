# backend/slotbook/models/read_models.py
"""
Query-side tables maintained by the availability projector.

None of these rows are authoritative. They are deleted and regenerated
from availability and appointments whenever either changes.
"""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Date, DateTime, Index, Integer, Numeric, String, Text, Time
from sqlalchemy.sql import func

from ..core.ulid_helper import generate_ulid
from ..database import Base


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class AvailableBookingSlot(Base):
    """One bookable (service, start time) offer for a staff member on a date."""

    __tablename__ = "available_booking_slots"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    business_id = Column(String(26), nullable=False)
    service_id = Column(String(26), nullable=False)
    staff_id = Column(String(26), nullable=False)
    slot_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    service_duration_minutes = Column(Integer, nullable=False)
    service_name = Column(String(255), nullable=False)
    staff_name = Column(String(255), nullable=False)
    service_price = Column(Numeric(10, 2), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now_utc, server_default=func.now())

    __table_args__ = (
        Index("ix_booking_slots_business_service_date", "business_id", "service_id", "slot_date"),
        Index("ix_booking_slots_staff_date", "staff_id", "slot_date"),
    )


class StaffDailySchedule(Base):
    """A free or booked stretch of a staff member's day."""

    __tablename__ = "staff_daily_schedules"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    business_id = Column(String(26), nullable=False)
    staff_id = Column(String(26), nullable=False)
    schedule_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    is_available = Column(Boolean, nullable=False, default=True)
    appointment_id = Column(String(26), nullable=True)
    client_id = Column(String(26), nullable=True)
    client_name = Column(String(255), nullable=True)
    service_id = Column(String(26), nullable=True)
    service_name = Column(String(255), nullable=True)

    __table_args__ = (Index("ix_staff_schedules_staff_date", "staff_id", "schedule_date"),)


class ClientAppointmentView(Base):
    """Client-facing, display-ready copy of an appointment."""

    __tablename__ = "client_appointment_views"

    id = Column(String(26), primary_key=True)
    client_id = Column(String(26), nullable=False)
    business_id = Column(String(26), nullable=False)
    business_name = Column(String(255), nullable=False)
    service_id = Column(String(26), nullable=False)
    service_name = Column(String(255), nullable=False)
    staff_id = Column(String(26), nullable=False)
    staff_name = Column(String(255), nullable=False)
    appointment_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    status = Column(String(20), nullable=False)
    price = Column(Numeric(10, 2), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (Index("ix_client_views_client_date", "client_id", "appointment_date"),)
