# backend/slotbook/services/booking_service.py
"""
Booking Service for the Slotbook engine.

Owns the write side of appointments: booking, cancellation and the
staff-driven status changes. Each command runs in one transaction that
loads the aggregates, applies the transition, saves both the appointment
and the staff member's availability, and commits. Domain events are
published only after the commit succeeds.

The overlap checks done here are advisory. Two bookers racing for the
same slot are separated by the storage layer: the partial unique index
(and the exclusion constraint on PostgreSQL) on appointments, plus the
version column on the availability row. The loser's IntegrityError or
StaleDataError is translated into BookingConflictException.
"""

from datetime import date
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..core.enums import RequesterRole
from ..core.exceptions import (
    AccessDeniedException,
    BookingConflictException,
    BusinessRuleException,
    IneligibleStaffException,
    NoAvailabilityException,
    NotFoundException,
    RepositoryException,
    ServiceException,
    ServiceNotFoundException,
    SlotUnavailableException,
)
from ..domain.appointment import Appointment
from ..domain.availability import StaffDailyAvailability
from ..domain.time_slot import TimeSlot
from ..events.publisher import EventPublisher, publish_all
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from ..schemas.commands import AppointmentCommand, BookAppointment, CancelAppointment
from .base import BaseService
from .directory import MasterDataDirectory
from .slot_query_service import SlotQueryService

logger = logging.getLogger(__name__)

STAFF_CONFLICT_MESSAGE = "This staff member already has an appointment at this time"
GENERIC_CONFLICT_MESSAGE = "This time slot conflicts with an existing booking"
CONCURRENT_BOOKING_MESSAGE = "This time slot was just booked by someone else"

OVERLAP_CONSTRAINTS = ("appointments_no_overlap_per_staff", "uq_appointments_staff_slot_active")


class BookingService(BaseService):
    """
    Service layer for appointment commands.

    Handles:
    - Booking a service with a staff member
    - Client, staff and business cancellations
    - Confirm, complete and no-show transitions
    """

    @staticmethod
    def _is_deadlock_error(exc: OperationalError) -> bool:
        orig = getattr(exc, "orig", None)
        pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
        if pgcode == "40P01":
            return True
        message = str(exc).lower()
        return "deadlock detected" in message or "database is locked" in message

    def __init__(
        self,
        db: Session,
        directory: MasterDataDirectory,
        event_publisher: EventPublisher,
        slot_query_service: Optional[SlotQueryService] = None,
        clock: Callable[[], date] = date.today,
    ):
        """
        Initialize booking service.

        Args:
            db: Database session
            directory: Service, staff and eligibility lookups
            event_publisher: Receives domain events after commit
            slot_query_service: Used to suggest alternatives on conflict
            clock: Returns today's date; injected so tests can pin it
        """
        super().__init__(db)
        self.directory = directory
        self.event_publisher = event_publisher
        self.slot_query_service = slot_query_service or SlotQueryService(db)
        self.clock = clock
        self.appointment_repository = RepositoryFactory.create_appointment_repository(db)
        self.availability_repository = RepositoryFactory.create_availability_repository(db)

    @BaseService.measure_operation("book_appointment")
    def book(self, command: BookAppointment) -> Appointment:
        """
        Book an appointment.

        Steps:
        1. Staff must perform the service for the booking business
        2. End time comes from the service duration
        3. The staff member must have availability on the date
        4. The interval must sit inside one free slot
        5. No active appointment of the staff member may overlap it
        6. Save the appointment, carve the interval out of availability, commit
        7. Publish events

        Raises:
            IneligibleStaffException: Staff does not perform the service
            AccessDeniedException: Staff belongs to another business
            ServiceNotFoundException: Service unknown to the catalog
            NoAvailabilityException: No availability row for the date
            SlotUnavailableException: Interval not inside free time
            BookingConflictException: Overlap found, or a concurrent booking won
        """
        if not self.directory.can_perform(command.staff_id, command.service_id):
            raise IneligibleStaffException(command.staff_id, command.service_id)
        staff = self.directory.get_staff_info(command.staff_id)
        if staff is not None:
            self._ensure_same_business(command, staff.business_id)

        service = self.directory.get_service_info(command.service_id)
        if service is None:
            raise ServiceNotFoundException(command.service_id)
        slot = TimeSlot.starting_at(command.start_time, service.duration_minutes)

        try:
            with self.appointment_repository.transaction():
                availability = self.availability_repository.get_for_staff_on(
                    command.staff_id, command.appointment_date
                )
                if availability is None:
                    raise NoAvailabilityException(
                        command.staff_id, command.appointment_date.isoformat()
                    )
                self._ensure_same_business(command, availability.business_id)
                if not availability.is_available(slot):
                    raise SlotUnavailableException(
                        details=self._build_conflict_details(command, slot)
                    )
                if self.appointment_repository.find_overlapping(
                    command.staff_id, command.appointment_date, slot
                ):
                    raise BookingConflictException(
                        message=STAFF_CONFLICT_MESSAGE,
                        details=self._build_conflict_details(command, slot),
                    )

                scheduled = Appointment.schedule(
                    business_id=command.business_id,
                    client_id=command.client_id,
                    staff_id=command.staff_id,
                    service_id=command.service_id,
                    appointment_date=command.appointment_date,
                    slot=slot,
                    notes=command.notes,
                )
                appointment = self.appointment_repository.add(scheduled.state)
                carved = availability.apply_appointment(slot)
                self.availability_repository.save(carved.state)
        except BookingConflictException as exc:
            prometheus_metrics.record_booking_conflict("precheck")
            exc.details["alternative_slots"] = self._alternative_details(command)
            raise
        except IntegrityError as exc:
            message, scope = self._resolve_integrity_conflict_message(exc)
            raise self._lost_race(command, slot, message, scope) from exc
        except StaleDataError as exc:
            raise self._lost_race(
                command, slot, CONCURRENT_BOOKING_MESSAGE, "availability"
            ) from exc
        except OperationalError as exc:
            if self._is_deadlock_error(exc):
                raise self._lost_race(command, slot, GENERIC_CONFLICT_MESSAGE, None) from exc
            self.logger.error(f"Database error while booking: {str(exc)}")
            raise ServiceException("Database operation failed") from exc
        except SQLAlchemyError as exc:
            self.logger.error(f"Database error while booking: {str(exc)}")
            raise ServiceException("Database operation failed") from exc
        except RepositoryException as exc:
            message = str(exc).lower()
            if "deadlock detected" in message or "database is locked" in message:
                raise self._lost_race(command, slot, GENERIC_CONFLICT_MESSAGE, None) from exc
            raise ServiceException("Database operation failed") from exc

        self.log_operation(
            "book_appointment",
            appointment_id=appointment.id,
            staff_id=appointment.staff_id,
            appointment_date=appointment.appointment_date.isoformat(),
        )
        self._publish(scheduled.events + carved.events)
        return appointment

    @BaseService.measure_operation("cancel_appointment")
    def cancel(self, command: CancelAppointment) -> Appointment:
        """
        Cancel an appointment and give its time back to the staff member.

        Cancelling an already-cancelled appointment returns it unchanged
        and publishes nothing.
        """
        with self.transaction():
            appointment = self._load(command.appointment_id)
            self._authorize_cancel(appointment, command)
            transition = appointment.cancel(command.reason)
            if not transition.changed:
                return appointment

            cancelled = self.appointment_repository.save(transition.state)
            availability = self.availability_repository.get_for_staff_on(
                cancelled.staff_id, cancelled.appointment_date
            ) or StaffDailyAvailability.create(
                cancelled.staff_id, cancelled.business_id, cancelled.appointment_date
            )
            released = availability.release_appointment(cancelled.time_slot)
            self.availability_repository.save(released.state)

        self.log_operation(
            "cancel_appointment",
            appointment_id=cancelled.id,
            requester_role=command.requester_role.value,
        )
        self._publish(transition.events + released.events)
        return cancelled

    @BaseService.measure_operation("confirm_appointment")
    def confirm(self, command: AppointmentCommand) -> Appointment:
        return self._transition(command, lambda a: a.confirm(), "confirm_appointment")

    @BaseService.measure_operation("complete_appointment")
    def complete(self, command: AppointmentCommand) -> Appointment:
        return self._transition(command, lambda a: a.complete(), "complete_appointment")

    @BaseService.measure_operation("mark_no_show")
    def mark_no_show(self, command: AppointmentCommand) -> Appointment:
        return self._transition(command, lambda a: a.mark_no_show(), "mark_no_show")

    # Helpers

    def _transition(self, command: AppointmentCommand, apply: Callable, operation: str):
        with self.transaction():
            appointment = self._load(command.appointment_id)
            if command.staff_id is not None and command.staff_id != appointment.staff_id:
                raise AccessDeniedException(
                    "Appointment belongs to another staff member",
                    details={"appointment_id": appointment.id},
                )
            transition = apply(appointment)
            updated = self.appointment_repository.save(transition.state)

        self.log_operation(operation, appointment_id=updated.id, status=updated.status.value)
        self._publish(transition.events)
        return updated

    def _load(self, appointment_id: str) -> Appointment:
        appointment = self.appointment_repository.get(appointment_id)
        if appointment is None:
            raise NotFoundException(
                "Appointment not found",
                code="APPOINTMENT_NOT_FOUND",
                details={"appointment_id": appointment_id},
            )
        return appointment

    def _authorize_cancel(self, appointment: Appointment, command: CancelAppointment) -> None:
        role = command.requester_role
        if role == RequesterRole.CLIENT:
            owner = appointment.client_id
        elif role == RequesterRole.STAFF:
            owner = appointment.staff_id
        else:
            owner = appointment.business_id
        if command.requester_id != owner:
            raise AccessDeniedException(
                f"Only the appointment's {role.value} can cancel it",
                details={"appointment_id": appointment.id},
            )
        if role == RequesterRole.STAFF and appointment.appointment_date < self.clock():
            raise BusinessRuleException(
                "Cannot cancel past appointments",
                code="APPOINTMENT_IN_PAST",
                details={"appointment_id": appointment.id},
            )

    @staticmethod
    def _ensure_same_business(command: BookAppointment, owner_business_id: str) -> None:
        if command.business_id != owner_business_id:
            raise AccessDeniedException(
                "Staff member does not work for this business",
                details={"business_id": command.business_id, "staff_id": command.staff_id},
            )

    def _publish(self, events: Tuple) -> None:
        published = publish_all(self.event_publisher, events)
        self.logger.debug(f"Published {published} events")

    def _lost_race(
        self,
        command: BookAppointment,
        slot: TimeSlot,
        message: str,
        scope: Optional[str],
    ) -> BookingConflictException:
        self.logger.info(
            "Booking race lost for staff %s on %s at %s",
            command.staff_id,
            command.appointment_date,
            slot,
        )
        prometheus_metrics.record_booking_conflict("constraint")
        details = self._build_conflict_details(command, slot)
        if scope:
            details["conflict_scope"] = scope
        details["alternative_slots"] = self._alternative_details(command)
        return BookingConflictException(message=message, details=details)

    @staticmethod
    def _build_conflict_details(command: BookAppointment, slot: TimeSlot) -> Dict[str, Any]:
        return {
            "business_id": command.business_id,
            "staff_id": command.staff_id,
            "service_id": command.service_id,
            "date": command.appointment_date.isoformat(),
            "start_time": slot.start_time.isoformat(),
            "end_time": slot.end_time.isoformat(),
        }

    def _alternative_details(self, command: BookAppointment) -> List[Dict[str, str]]:
        try:
            alternatives = self.slot_query_service.find_alternative_slots(
                command.business_id,
                command.service_id,
                command.appointment_date,
                command.start_time,
            )
        except RepositoryException as exc:
            self.logger.warning(f"Could not compute alternative slots: {str(exc)}")
            return []
        return [alternative.to_detail() for alternative in alternatives]

    def _resolve_integrity_conflict_message(
        self, integrity_error: IntegrityError
    ) -> Tuple[str, Optional[str]]:
        """
        Determine the conflict message and scope from a database IntegrityError.
        """
        constraint_name: str = ""
        orig = getattr(integrity_error, "orig", None)
        diag = getattr(orig, "diag", None)

        if diag is not None:
            constraint_name = getattr(diag, "constraint_name", "") or ""

        if not constraint_name and orig is not None:
            text = str(orig)
            for candidate in OVERLAP_CONSTRAINTS:
                if candidate in text:
                    constraint_name = candidate
                    break
            # SQLite names the columns rather than the index
            if not constraint_name and "appointments.staff_id" in text:
                constraint_name = "uq_appointments_staff_slot_active"

        if constraint_name in OVERLAP_CONSTRAINTS:
            return STAFF_CONFLICT_MESSAGE, "staff"

        return GENERIC_CONFLICT_MESSAGE, None
