from __future__ import annotations

from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy import JSON, Column, Date, DateTime, Index, Integer, String, UniqueConstraint

from ..core.ulid_helper import generate_ulid
from ..database import Base


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class StaffAvailabilityDay(Base):
    """
    One row per (staff, date) holding that day's free intervals.

    ``time_slots`` is a JSON list of ``["HH:MM:SS", "HH:MM:SS"]`` pairs.
    ``version`` is the optimistic-lock counter: two transactions that load
    the same day and both write it back cannot both commit.
    """

    __tablename__ = "staff_daily_availability"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    staff_id = Column(String(26), nullable=False)
    business_id = Column(String(26), nullable=False, index=True)
    availability_date = Column(Date, nullable=False)
    time_slots = Column(JSON, nullable=False, default=list)
    version = Column(Integer, nullable=False, default=1)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_now_utc,
        onupdate=_now_utc,
        server_default=sa.func.now(),
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        UniqueConstraint("staff_id", "availability_date", name="uq_staff_availability_day"),
        Index("ix_staff_availability_business_date", "business_id", "availability_date"),
    )
