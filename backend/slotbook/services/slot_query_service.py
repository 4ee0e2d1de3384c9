# backend/slotbook/services/slot_query_service.py
"""
Slot Query Service.

Read-only lookups over the available_booking_slots projection: whether
a specific offer exists, every offer for a service or staff member on a
date, and the alternatives suggested when a requested slot is gone.
"""

from datetime import date, time, timedelta
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..models.read_models import AvailableBookingSlot
from ..repositories.factory import RepositoryFactory
from ..schemas.responses import AlternativeSlot, AvailableSlot
from ..utils.time_utils import time_to_minutes
from .base import BaseService

logger = logging.getLogger(__name__)


class SlotQueryService(BaseService):
    """Queries answered from the bookable-slot read model."""

    def __init__(self, db: Session):
        super().__init__(db)
        self.slot_repository = RepositoryFactory.create_bookable_slot_repository(db)

    @BaseService.measure_operation("is_slot_available")
    def is_slot_available(
        self,
        business_id: str,
        staff_id: str,
        service_id: str,
        on_date: date,
        start_time: time,
    ) -> bool:
        return (
            self.slot_repository.find_one(business_id, staff_id, service_id, on_date, start_time)
            is not None
        )

    def get_available_slot(
        self,
        business_id: str,
        staff_id: str,
        service_id: str,
        on_date: date,
        start_time: time,
    ) -> Optional[AvailableSlot]:
        row = self.slot_repository.find_one(business_id, staff_id, service_id, on_date, start_time)
        return AvailableSlot.model_validate(row) if row else None

    @BaseService.measure_operation("get_available_slots_for_service")
    def get_available_slots_for_service(
        self, business_id: str, service_id: str, on_date: date
    ) -> List[AvailableSlot]:
        rows = self.slot_repository.find_for_service(business_id, service_id, on_date)
        return [AvailableSlot.model_validate(row) for row in rows]

    @BaseService.measure_operation("get_available_slots_for_staff")
    def get_available_slots_for_staff(
        self, business_id: str, staff_id: str, on_date: date
    ) -> List[AvailableSlot]:
        rows = self.slot_repository.find_for_staff(staff_id, on_date, business_id=business_id)
        return [AvailableSlot.model_validate(row) for row in rows]

    @BaseService.measure_operation("find_alternative_slots")
    def find_alternative_slots(
        self,
        business_id: str,
        service_id: str,
        preferred_date: date,
        preferred_time: time,
        max_results: Optional[int] = None,
        staff_id: Optional[str] = None,
        search_days: Optional[int] = None,
    ) -> List[AlternativeSlot]:
        """
        Offers close to a preferred date and time.

        Same-day offers come first, closest start time first, skipping the
        preferred start itself. Remaining places are filled from the
        following ``search_days`` days in date then time order.
        """
        limit = settings.max_alternative_slots if max_results is None else max_results
        horizon = settings.alternative_search_days if search_days is None else search_days
        if limit <= 0:
            return []

        preferred_minutes = time_to_minutes(preferred_time)
        same_day = [
            row
            for row in self.slot_repository.find_for_service(
                business_id, service_id, preferred_date, staff_id=staff_id
            )
            if row.start_time != preferred_time
        ]
        same_day.sort(
            key=lambda row: (
                abs(time_to_minutes(row.start_time) - preferred_minutes),
                row.start_time,
                row.staff_id,
            )
        )
        alternatives = [self._to_alternative(row) for row in same_day[:limit]]

        if len(alternatives) < limit and horizon > 0:
            later = self.slot_repository.find_for_service(
                business_id,
                service_id,
                preferred_date + timedelta(days=1),
                end_date=preferred_date + timedelta(days=horizon),
                staff_id=staff_id,
            )
            alternatives.extend(
                self._to_alternative(row) for row in later[: limit - len(alternatives)]
            )

        self.logger.debug(
            "Found %d alternatives for service %s near %s %s",
            len(alternatives),
            service_id,
            preferred_date,
            preferred_time,
        )
        return alternatives

    @staticmethod
    def _to_alternative(row: AvailableBookingSlot) -> AlternativeSlot:
        return AlternativeSlot(
            slot_date=row.slot_date,
            start_time=row.start_time,
            end_time=row.end_time,
            staff_id=row.staff_id,
            staff_name=row.staff_name,
        )
