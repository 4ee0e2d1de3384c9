# backend/slotbook/services/appointment_query_service.py
"""
Appointment Query Service.

Read-only appointment lookups for clients and staff, mapped to
AppointmentView with display names resolved through the directory.
Unknown names fall back to the configured placeholders.
"""

from datetime import date
import logging
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import AppointmentStatus
from ..core.exceptions import AccessDeniedException, NotFoundException, ValidationException
from ..domain.appointment import Appointment
from ..repositories.factory import RepositoryFactory
from ..schemas.responses import AppointmentView, ClientAppointments
from .base import BaseService
from .directory import MasterDataDirectory, display_name

logger = logging.getLogger(__name__)

OPEN_STATUSES = (AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED)


class AppointmentQueryService(BaseService):
    def __init__(
        self,
        db: Session,
        directory: MasterDataDirectory,
        clock: Callable[[], date] = date.today,
    ):
        super().__init__(db)
        self.directory = directory
        self.clock = clock
        self.appointment_repository = RepositoryFactory.create_appointment_repository(db)

    @BaseService.measure_operation("get_appointment")
    def get_appointment(
        self, appointment_id: str, client_id: Optional[str] = None
    ) -> AppointmentView:
        """
        Load one appointment.

        When ``client_id`` is given the appointment must belong to that client.
        """
        appointment = self.appointment_repository.get(appointment_id)
        if appointment is None:
            raise NotFoundException(
                "Appointment not found",
                code="APPOINTMENT_NOT_FOUND",
                details={"appointment_id": appointment_id},
            )
        if client_id is not None and appointment.client_id != client_id:
            raise AccessDeniedException(
                "You can only view your own appointments",
                details={"appointment_id": appointment_id},
            )
        return self.to_view(appointment)

    def get_client_appointments(self, client_id: str) -> List[AppointmentView]:
        return [self.to_view(a) for a in self.appointment_repository.find_for_client(client_id)]

    def get_client_upcoming_appointments(self, client_id: str) -> List[AppointmentView]:
        """Scheduled or confirmed appointments from today on, soonest first."""
        return [
            self.to_view(a)
            for a in self.appointment_repository.find_upcoming_for_client(client_id, self.clock())
        ]

    def get_client_appointments_between(
        self, client_id: str, start_date: date, end_date: date
    ) -> List[AppointmentView]:
        if end_date < start_date:
            raise ValidationException(
                "End date must not be before start date", code="INVALID_DATE_RANGE"
            )
        return [
            self.to_view(a)
            for a in self.appointment_repository.find_for_client_between(
                client_id, start_date, end_date
            )
        ]

    @BaseService.measure_operation("get_client_overview")
    def get_client_overview(
        self,
        client_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> ClientAppointments:
        """
        Split a client's appointments into upcoming and past.

        Upcoming holds open appointments dated today or later, soonest
        first. Everything else is past, most recent first.
        """
        if start_date is not None and end_date is not None:
            views = self.get_client_appointments_between(client_id, start_date, end_date)
        else:
            views = self.get_client_appointments(client_id)

        today = self.clock()
        upcoming, past = [], []
        for view in views:
            if view.appointment_date >= today and view.status in OPEN_STATUSES:
                upcoming.append(view)
            else:
                past.append(view)
        upcoming.sort(key=lambda v: (v.appointment_date, v.start_time))
        past.sort(key=lambda v: (v.appointment_date, v.start_time), reverse=True)
        return ClientAppointments(upcoming=upcoming, past=past)

    @BaseService.measure_operation("get_staff_appointments_for_date")
    def get_staff_appointments_for_date(
        self, staff_id: str, on_date: date
    ) -> List[AppointmentView]:
        appointments = self.appointment_repository.find_for_staff_on(staff_id, on_date)
        return [self.to_view(a) for a in appointments]

    def to_view(self, appointment: Appointment) -> AppointmentView:
        service = self.directory.get_service_info(appointment.service_id)
        staff = self.directory.get_staff_info(appointment.staff_id)
        business_name = self.directory.get_business_name(appointment.business_id)
        if business_name is None and staff is not None:
            business_name = staff.business_name
        return AppointmentView(
            id=appointment.id,
            business_id=appointment.business_id,
            business_name=display_name(business_name, settings.placeholder_business_name),
            client_id=appointment.client_id,
            client_name=display_name(
                self.directory.get_client_name(appointment.client_id),
                settings.placeholder_client_name,
            ),
            staff_id=appointment.staff_id,
            staff_name=display_name(staff.name if staff else None, settings.placeholder_staff_name),
            service_id=appointment.service_id,
            service_name=display_name(
                service.name if service else None, settings.placeholder_service_name
            ),
            appointment_date=appointment.appointment_date,
            start_time=appointment.start_time,
            end_time=appointment.end_time,
            status=appointment.status,
            notes=appointment.notes,
            price=service.price if service else None,
            created_at=appointment.created_at,
            updated_at=appointment.updated_at,
        )
