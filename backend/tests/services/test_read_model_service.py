from collections import Counter
from datetime import time, timedelta

import pytest

from slotbook.core.enums import SlotStepKind
from slotbook.domain.slot_generation import SlotStepPolicy
from slotbook.events.availability_events import StaffServiceAssociationUpdated
from slotbook.models import AvailableBookingSlot, ClientAppointmentView
from slotbook.repositories.factory import RepositoryFactory
from slotbook.schemas.commands import ConfirmAppointment
from slotbook.services.read_model_service import AvailabilityReadModelService
from tests.builders import (
    BUSINESS_ID,
    CLIENT_ID,
    DAY,
    HAIRCUT,
    OTHER_CLIENT_ID,
    OTHER_STAFF_ID,
    STAFF_ID,
    TODAY,
    TRIM,
    availability_command,
    booking_command,
    clock,
)


def offers_by_service(slot_queries, staff_id=STAFF_ID, on_date=DAY):
    return Counter(
        s.service_id
        for s in slot_queries.get_available_slots_for_staff(BUSINESS_ID, staff_id, on_date)
    )


def schedule_rows(db, staff_id=STAFF_ID, on_date=DAY):
    repository = RepositoryFactory.create_staff_schedule_repository(db)
    return repository.find_for_staff_on(staff_id, on_date)


def test_availability_update_generates_offers(projector, availability_service, slot_queries):
    availability_service.set_availability(availability_command(("09:00", "10:00")))

    offers = slot_queries.get_available_slots_for_staff(BUSINESS_ID, STAFF_ID, DAY)

    assert [(o.service_id, o.start_time) for o in offers if o.service_id == HAIRCUT] == [
        (HAIRCUT, time(9, 0))
    ]
    assert [o.start_time for o in offers if o.service_id == TRIM] == [
        time(9, 0),
        time(9, 15),
        time(9, 30),
    ]
    haircut = next(o for o in offers if o.service_id == HAIRCUT)
    assert haircut.staff_name == "Alice"
    assert haircut.service_name == "Haircut"
    assert haircut.service_duration_minutes == 60


def test_service_duration_step(session_factory, directory, availability_service):
    availability_service.set_availability(availability_command(("09:00", "12:00")))
    projector = AvailabilityReadModelService(
        directory,
        session_factory,
        step_policy=SlotStepPolicy(SlotStepKind.SERVICE_DURATION),
        clock=clock,
    )

    db = session_factory()
    try:
        written = projector.rebuild_day(db, STAFF_ID, DAY)
        db.commit()
        starts = [
            row.start_time
            for row in db.query(AvailableBookingSlot)
            .filter(AvailableBookingSlot.service_id == HAIRCUT)
            .order_by(AvailableBookingSlot.start_time)
        ]
    finally:
        db.close()

    assert written == 3 + 6
    assert starts == [time(9, 0), time(10, 0), time(11, 0)]


def test_deleting_availability_clears_the_day(projector, availability_service, slot_queries, db):
    availability_service.set_availability(availability_command(("09:00", "12:00")))

    availability_service.set_availability(availability_command())

    assert slot_queries.get_available_slots_for_staff(BUSINESS_ID, STAFF_ID, DAY) == []
    assert schedule_rows(db) == []


def test_schedule_shows_free_and_booked_time(projector, availability_service, booking_service, db):
    availability_service.set_availability(availability_command(("09:00", "12:00")))
    appointment = booking_service.book(booking_command(time(10, 0)))

    rows = schedule_rows(db)

    assert [(r.start_time, r.end_time, r.is_available) for r in rows] == [
        (time(9, 0), time(10, 0), True),
        (time(10, 0), time(11, 0), False),
        (time(11, 0), time(12, 0), True),
    ]
    booked = rows[1]
    assert booked.appointment_id == appointment.id
    assert booked.client_name == "Carol"
    assert booked.service_name == "Haircut"


def test_unknown_client_gets_placeholder_name(
    projector, availability_service, booking_service, db
):
    availability_service.set_availability(availability_command(("09:00", "12:00")))
    booking_service.book(booking_command(time(10, 0), client_id=OTHER_CLIENT_ID))

    booked = [r for r in schedule_rows(db) if not r.is_available]

    assert booked[0].client_name == "Client"


def test_client_view_follows_status(projector, availability_service, booking_service, db):
    availability_service.set_availability(availability_command(("09:00", "12:00")))
    appointment = booking_service.book(booking_command(time(10, 0)))

    view = db.get(ClientAppointmentView, appointment.id)
    assert view.status == "SCHEDULED"
    assert view.client_id == CLIENT_ID
    assert (view.business_name, view.staff_name, view.service_name) == (
        "Downtown Cuts",
        "Alice",
        "Haircut",
    )

    booking_service.confirm(ConfirmAppointment(appointment_id=appointment.id))
    db.expire_all()

    assert db.get(ClientAppointmentView, appointment.id).status == "CONFIRMED"


def test_rebuild_period_restores_wiped_rows(projector, availability_service, slot_queries, db):
    availability_service.set_availability(availability_command(("09:00", "10:00")))
    before = offers_by_service(slot_queries)
    RepositoryFactory.create_bookable_slot_repository(db).delete_for_staff_on(STAFF_ID, DAY)
    db.commit()

    days = projector.rebuild_period(BUSINESS_ID, DAY, DAY + timedelta(days=6))

    assert days == 1
    assert offers_by_service(slot_queries) == before


def test_rebuild_period_rejects_inverted_range(projector):
    with pytest.raises(ValueError):
        projector.rebuild_period(BUSINESS_ID, DAY, DAY - timedelta(days=1))


def test_purge_before_drops_past_rows(projector, availability_service, slot_queries, db):
    past = TODAY - timedelta(days=2)
    availability_service.set_availability(availability_command(("09:00", "10:00"), on_date=past))
    availability_service.set_availability(availability_command(("09:00", "10:00")))

    purged = projector.purge_before()

    assert purged["bookable_slots"] == 4
    assert purged["schedule_rows"] == 1
    assert slot_queries.get_available_slots_for_staff(BUSINESS_ID, STAFF_ID, past) == []
    assert sum(offers_by_service(slot_queries).values()) == 4


def test_staff_service_change_rebuilds_future_days(
    projector, availability_service, slot_queries, directory, bus
):
    availability_service.set_availability(
        availability_command(("09:00", "10:00"), staff_id=OTHER_STAFF_ID)
    )
    assert offers_by_service(slot_queries, OTHER_STAFF_ID) == {HAIRCUT: 1}

    directory.assign_service(OTHER_STAFF_ID, TRIM)
    bus.publish(
        StaffServiceAssociationUpdated(
            staff_id=OTHER_STAFF_ID, business_id=BUSINESS_ID, service_ids=(HAIRCUT, TRIM)
        )
    )

    assert offers_by_service(slot_queries, OTHER_STAFF_ID) == {HAIRCUT: 1, TRIM: 3}


def test_unknown_assigned_service_is_skipped(
    projector, availability_service, slot_queries, directory
):
    directory.assign_service(STAFF_ID, "svc-retired")

    availability_service.set_availability(availability_command(("09:00", "10:00")))

    assert set(offers_by_service(slot_queries)) == {HAIRCUT, TRIM}
