"""Availability domain events."""
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, Tuple


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class StaffDailyAvailabilityUpdated:
    """Fired after any change to a staff member's free time for one day."""

    availability_id: str
    staff_id: str
    business_id: str
    availability_date: date
    time_slots: Tuple[Tuple[str, str], ...]
    occurred_at: datetime = field(default_factory=_now_utc)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class StaffServiceAssociationUpdated:
    """Fired when the set of services a staff member performs changes."""

    staff_id: str
    business_id: str
    service_ids: Tuple[str, ...] = ()
    occurred_at: datetime = field(default_factory=_now_utc)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
