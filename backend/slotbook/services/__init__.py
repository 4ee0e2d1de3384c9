"""
Service layer for the Slotbook engine.

Write side: BookingService, AvailabilityService.
Read side: SlotQueryService, AppointmentQueryService.
Projection: AvailabilityReadModelService.
Facade: BookingApplicationService.
"""

from .appointment_query_service import AppointmentQueryService
from .availability_service import AvailabilityService
from .base import BaseService
from .booking_application_service import BookingApplicationService
from .booking_service import BookingService
from .directory import MasterDataDirectory, ServiceInfo, StaffInfo, StaticDirectory
from .read_model_service import AvailabilityReadModelService
from .slot_query_service import SlotQueryService

__all__ = [
    "AppointmentQueryService",
    "AvailabilityReadModelService",
    "AvailabilityService",
    "BaseService",
    "BookingApplicationService",
    "BookingService",
    "MasterDataDirectory",
    "ServiceInfo",
    "SlotQueryService",
    "StaffInfo",
    "StaticDirectory",
]
