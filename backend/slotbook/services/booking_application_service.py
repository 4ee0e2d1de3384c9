# backend/slotbook/services/booking_application_service.py
"""
Booking facade returning results instead of raising.

Callers that branch on an outcome (chat bots, batch importers, UI
adapters) get a BookingResult for every attempt. The read model is asked
first so a slot already gone is reported with alternatives without
opening a write transaction; the domain booking still makes the final
decision.
"""

import logging
from typing import List

from ..core.exceptions import BookingConflictException, DomainException, ServiceException
from ..schemas.commands import BookAppointment
from ..schemas.responses import AlternativeSlot, BookingOutcome, BookingResult
from .appointment_query_service import AppointmentQueryService
from .base import BaseService
from .booking_service import BookingService
from .slot_query_service import SlotQueryService

logger = logging.getLogger(__name__)

SLOT_GONE_MESSAGE = "This time slot is no longer available"
RACE_LOST_MESSAGE = (
    "This time slot was just booked by another user. Please select a different time."
)
SYSTEM_ERROR_MESSAGE = "An unexpected error occurred. Please try again."


class BookingApplicationService(BaseService):
    def __init__(
        self,
        booking_service: BookingService,
        slot_query_service: SlotQueryService,
        appointment_query_service: AppointmentQueryService,
    ):
        super().__init__(booking_service.db)
        self.booking_service = booking_service
        self.slot_query_service = slot_query_service
        self.appointment_query_service = appointment_query_service

    @BaseService.measure_operation("book_with_result")
    def book(self, command: BookAppointment) -> BookingResult:
        self.logger.info(
            "Processing booking for client %s, service %s, slot %s %s",
            command.client_id,
            command.service_id,
            command.appointment_date,
            command.start_time,
        )

        if not self.slot_query_service.is_slot_available(
            command.business_id,
            command.staff_id,
            command.service_id,
            command.appointment_date,
            command.start_time,
        ):
            self.logger.warning("Slot no longer available for booking attempt")
            return BookingResult(
                outcome=BookingOutcome.SLOT_UNAVAILABLE,
                message=SLOT_GONE_MESSAGE,
                error_code="SLOT_UNAVAILABLE",
                alternatives=self._alternatives(command),
            )

        try:
            appointment = self.booking_service.book(command)
        except BookingConflictException as exc:
            self.logger.warning(f"Booking lost to a concurrent request: {exc.message}")
            return BookingResult(
                outcome=BookingOutcome.SLOT_UNAVAILABLE,
                message=RACE_LOST_MESSAGE,
                error_code=exc.code,
                alternatives=self._alternatives(command),
                details={k: v for k, v in exc.details.items() if k != "alternative_slots"},
            )
        except ServiceException as exc:
            self.logger.error(f"Booking failed with system error: {exc.message}")
            return BookingResult(
                outcome=BookingOutcome.SYSTEM_ERROR,
                message=SYSTEM_ERROR_MESSAGE,
                error_code=exc.code,
            )
        except DomainException as exc:
            self.logger.info(f"Booking rejected: {exc.message}")
            return BookingResult(
                outcome=BookingOutcome.VALIDATION_ERROR,
                message=exc.message,
                error_code=exc.code,
                details=exc.details,
            )
        except Exception:
            self.logger.exception("Unexpected error during booking")
            return BookingResult(
                outcome=BookingOutcome.SYSTEM_ERROR,
                message=SYSTEM_ERROR_MESSAGE,
            )

        self.logger.info(f"Successfully booked appointment: {appointment.id}")
        return BookingResult(
            outcome=BookingOutcome.SUCCESS,
            appointment=self.appointment_query_service.to_view(appointment),
        )

    def _alternatives(self, command: BookAppointment) -> List[AlternativeSlot]:
        return self.slot_query_service.find_alternative_slots(
            command.business_id,
            command.service_id,
            command.appointment_date,
            command.start_time,
            staff_id=command.staff_id,
        )
