# backend/slotbook/services/read_model_service.py
"""
Availability read-model projector.

Listens for availability and appointment events and regenerates the
query-side tables for the affected (staff, date):

- available_booking_slots: one row per (service, start time) a client can book
- staff_daily_schedules: the staff member's free and booked stretches
- client_appointment_views: one display-ready row per appointment

Every rebuild deletes the day's rows and writes them again from the
authoritative availability and appointment rows, so running a rebuild
twice is harmless. Each handler opens its own session from the session
factory; the write that triggered it has already committed.
"""

from contextlib import contextmanager
from datetime import date, timedelta
import logging
from typing import Callable, Dict, Iterator, List, Optional

from sqlalchemy.orm import Session, sessionmaker

from ..core.config import settings
from ..database import SessionLocal
from ..domain.appointment import Appointment
from ..domain.slot_generation import (
    ProjectionCatalog,
    ServiceOffering,
    SlotStepPolicy,
    build_schedule,
    generate_booking_slots,
)
from ..events.appointment_events import (
    AppointmentCancelled,
    AppointmentCompleted,
    AppointmentConfirmed,
    AppointmentEvent,
    AppointmentNoShow,
    AppointmentScheduled,
)
from ..events.availability_events import (
    StaffDailyAvailabilityUpdated,
    StaffServiceAssociationUpdated,
)
from ..events.publisher import InProcessEventBus
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .directory import MasterDataDirectory, display_name

logger = logging.getLogger(__name__)


class AvailabilityReadModelService(BaseService):
    """Projector keeping the read model in step with availability and appointments."""

    def __init__(
        self,
        directory: MasterDataDirectory,
        session_factory: Optional[sessionmaker] = None,
        step_policy: Optional[SlotStepPolicy] = None,
        clock: Callable[[], date] = date.today,
    ):
        super().__init__(None)
        self.session_factory = session_factory or SessionLocal
        self.directory = directory
        self.step_policy = step_policy or settings.slot_step()
        self.clock = clock

    def register(self, bus: InProcessEventBus) -> None:
        """Subscribe every handler on ``bus``."""
        bus.subscribe(StaffDailyAvailabilityUpdated, self.on_availability_updated)
        bus.subscribe(AppointmentScheduled, self.on_appointment_booked_or_released)
        bus.subscribe(AppointmentCancelled, self.on_appointment_booked_or_released)
        bus.subscribe(AppointmentConfirmed, self.on_appointment_status_changed)
        bus.subscribe(AppointmentCompleted, self.on_appointment_status_changed)
        bus.subscribe(AppointmentNoShow, self.on_appointment_status_changed)
        bus.subscribe(StaffServiceAssociationUpdated, self.on_staff_services_changed)

    # Event handlers

    def on_availability_updated(self, event: StaffDailyAvailabilityUpdated) -> None:
        with self._session() as db:
            self.rebuild_day(
                db, event.staff_id, event.availability_date, trigger="availability_updated"
            )

    def on_appointment_booked_or_released(self, event: AppointmentEvent) -> None:
        with self._session() as db:
            slot_repository = RepositoryFactory.create_bookable_slot_repository(db)
            appointment_repository = RepositoryFactory.create_appointment_repository(db)
            appointment = appointment_repository.get(event.appointment_id)
            if appointment is None:
                self.logger.warning(
                    "Appointment %s vanished before projection", event.appointment_id
                )
                return
            slot_repository.delete_overlapping(
                event.staff_id, event.appointment_date, appointment.time_slot
            )
            self.rebuild_day(
                db, event.staff_id, event.appointment_date, trigger=type(event).__name__
            )
            self.upsert_client_view(db, appointment)

    def on_appointment_status_changed(self, event: AppointmentEvent) -> None:
        with self._session() as db:
            appointment = RepositoryFactory.create_appointment_repository(db).get(
                event.appointment_id
            )
            if appointment is not None:
                self.upsert_client_view(db, appointment)

    def on_staff_services_changed(self, event: StaffServiceAssociationUpdated) -> None:
        with self._session() as db:
            availability_repository = RepositoryFactory.create_availability_repository(db)
            for availability in availability_repository.find_for_staff_from(
                event.staff_id, self.clock()
            ):
                self.rebuild_day(
                    db,
                    availability.staff_id,
                    availability.availability_date,
                    trigger="staff_services_changed",
                )

    # Maintenance

    @BaseService.measure_operation("rebuild_period")
    def rebuild_period(self, business_id: str, start_date: date, end_date: date) -> int:
        """Regenerate every availability day of a business in a date range; returns days."""
        if end_date < start_date:
            raise ValueError("end_date must not be before start_date")
        with self._session() as db:
            days = RepositoryFactory.create_availability_repository(
                db
            ).find_for_business_between(business_id, start_date, end_date)
            for availability in days:
                self.rebuild_day(
                    db, availability.staff_id, availability.availability_date, trigger="manual"
                )
        self.log_operation(
            "rebuild_period",
            business_id=business_id,
            start_date=start_date.isoformat(),
            end_date=end_date.isoformat(),
            days=len(days),
        )
        return len(days)

    @BaseService.measure_operation("purge_before")
    def purge_before(self, cutoff: Optional[date] = None) -> Dict[str, int]:
        """
        Delete bookable-slot and schedule rows dated before ``cutoff``.

        Defaults to today minus ``past_read_model_retention_days``. Client
        appointment views are history and are never purged.
        """
        if cutoff is None:
            cutoff = self.clock() - timedelta(days=settings.past_read_model_retention_days)
        with self._session() as db:
            slots = RepositoryFactory.create_bookable_slot_repository(db).delete_before(cutoff)
            schedule = RepositoryFactory.create_staff_schedule_repository(db).delete_before(
                cutoff
            )
        self.logger.info(
            "Purged %d bookable slots and %d schedule rows before %s", slots, schedule, cutoff
        )
        return {"bookable_slots": slots, "schedule_rows": schedule}

    # Projection steps

    def rebuild_day(
        self, db: Session, staff_id: str, on_date: date, trigger: str = "manual"
    ) -> int:
        """
        Replace the bookable slots and schedule rows of ``staff_id`` on ``on_date``.

        Returns the number of bookable-slot rows written.
        """
        slot_repository = RepositoryFactory.create_bookable_slot_repository(db)
        schedule_repository = RepositoryFactory.create_staff_schedule_repository(db)
        slot_repository.delete_for_staff_on(staff_id, on_date)
        schedule_repository.delete_for_staff_on(staff_id, on_date)

        availability = RepositoryFactory.create_availability_repository(db).get_for_staff_on(
            staff_id, on_date
        )
        if availability is None:
            self.logger.debug("No availability for %s on %s; read model cleared", staff_id, on_date)
            return 0

        appointments = RepositoryFactory.create_appointment_repository(db).find_for_staff_on(
            staff_id, on_date, active_only=True
        )
        catalog = self._catalog_for(staff_id, appointments)
        if catalog is None:
            self.logger.debug("Staff %s performs no services; nothing to project", staff_id)
            return 0

        rows = generate_booking_slots(availability, appointments, catalog, self.step_policy)
        written = slot_repository.replace_for_staff_on(staff_id, on_date, rows)
        schedule_repository.replace_for_staff_on(
            staff_id, on_date, build_schedule(availability, appointments, catalog)
        )
        prometheus_metrics.record_read_model_rebuild(trigger)
        self.logger.debug(
            "Rebuilt read model for %s on %s: %d bookable slots", staff_id, on_date, written
        )
        return written

    def upsert_client_view(self, db: Session, appointment: Appointment) -> None:
        service = self.directory.get_service_info(appointment.service_id)
        staff = self.directory.get_staff_info(appointment.staff_id)
        business_name = self.directory.get_business_name(appointment.business_id)
        if business_name is None and staff is not None:
            business_name = staff.business_name
        RepositoryFactory.create_client_appointment_view_repository(db).upsert(
            {
                "id": appointment.id,
                "client_id": appointment.client_id,
                "business_id": appointment.business_id,
                "business_name": display_name(business_name, settings.placeholder_business_name),
                "service_id": appointment.service_id,
                "service_name": display_name(
                    service.name if service else None, settings.placeholder_service_name
                ),
                "staff_id": appointment.staff_id,
                "staff_name": display_name(
                    staff.name if staff else None, settings.placeholder_staff_name
                ),
                "appointment_date": appointment.appointment_date,
                "start_time": appointment.start_time,
                "end_time": appointment.end_time,
                "status": appointment.status.value,
                "price": service.price if service else None,
                "notes": appointment.notes,
                "created_at": appointment.created_at,
                "updated_at": appointment.updated_at,
            }
        )

    def _catalog_for(
        self, staff_id: str, appointments: List[Appointment]
    ) -> Optional[ProjectionCatalog]:
        offerings = []
        for service_id in self.directory.services_for_staff(staff_id):
            info = self.directory.get_service_info(service_id)
            if info is None:
                self.logger.warning(
                    "Skipping unknown service %s for staff %s", service_id, staff_id
                )
                continue
            offerings.append(
                ServiceOffering(service_id, info.name, info.duration_minutes, info.price)
            )
        if not offerings:
            return None

        staff = self.directory.get_staff_info(staff_id)
        client_names = {}
        service_names = {}
        for appointment in appointments:
            client_name = self.directory.get_client_name(appointment.client_id)
            if client_name:
                client_names[appointment.client_id] = client_name
            info = self.directory.get_service_info(appointment.service_id)
            if info is not None:
                service_names[appointment.service_id] = info.name
        return ProjectionCatalog(
            services=tuple(offerings),
            staff_name=display_name(staff.name if staff else None, settings.placeholder_staff_name),
            client_names=client_names,
            service_names=service_names,
            placeholder_client_name=settings.placeholder_client_name,
            placeholder_service_name=settings.placeholder_service_name,
        )

    @contextmanager
    def _session(self) -> Iterator[Session]:
        """One projection unit of work: commit on success, rollback and re-raise on failure."""
        db = self.session_factory()
        try:
            yield db
            db.commit()
        except Exception as e:
            self.logger.error(f"Projection failed, rolling back: {str(e)}")
            db.rollback()
            raise
        finally:
            db.close()
