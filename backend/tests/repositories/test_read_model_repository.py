from datetime import time, timedelta
from decimal import Decimal

from slotbook.domain.slot_generation import BookableSlot, ScheduleEntry
from slotbook.domain.time_slot import TimeSlot
from slotbook.repositories.factory import RepositoryFactory
from tests.builders import BUSINESS_ID, DAY, HAIRCUT, OTHER_STAFF_ID, STAFF_ID, TRIM


def offer(start: str, *, service_id=HAIRCUT, staff_id=STAFF_ID, on_date=DAY, minutes=60):
    slot = TimeSlot.starting_at(time.fromisoformat(start), minutes)
    return BookableSlot(
        business_id=BUSINESS_ID,
        service_id=service_id,
        staff_id=staff_id,
        slot_date=on_date,
        start_time=slot.start_time,
        end_time=slot.end_time,
        service_duration_minutes=minutes,
        service_name="Haircut",
        staff_name="Alice",
        service_price=Decimal("40.00"),
    )


def test_replace_swaps_the_whole_day(db):
    repository = RepositoryFactory.create_bookable_slot_repository(db)
    repository.replace_for_staff_on(STAFF_ID, DAY, [offer("09:00"), offer("10:00")])
    repository.replace_for_staff_on(OTHER_STAFF_ID, DAY, [offer("09:00", staff_id=OTHER_STAFF_ID)])
    db.commit()

    written = repository.replace_for_staff_on(STAFF_ID, DAY, [offer("14:00")])
    db.commit()

    assert written == 1
    assert [r.start_time for r in repository.find_for_staff(STAFF_ID, DAY)] == [time(14, 0)]
    assert len(repository.find_for_staff(OTHER_STAFF_ID, DAY)) == 1


def test_find_for_service_orders_by_date_time_staff(db):
    repository = RepositoryFactory.create_bookable_slot_repository(db)
    tomorrow = DAY + timedelta(days=1)
    repository.replace_for_staff_on(
        STAFF_ID,
        DAY,
        [offer("11:00"), offer("09:00"), offer("09:00", service_id=TRIM, minutes=30)],
    )
    repository.replace_for_staff_on(
        OTHER_STAFF_ID, DAY, [offer("09:00", staff_id=OTHER_STAFF_ID)]
    )
    repository.replace_for_staff_on(STAFF_ID, tomorrow, [offer("08:00", on_date=tomorrow)])
    db.commit()

    same_day = repository.find_for_service(BUSINESS_ID, HAIRCUT, DAY)
    assert [(r.start_time, r.staff_id) for r in same_day] == [
        (time(9, 0), STAFF_ID),
        (time(9, 0), OTHER_STAFF_ID),
        (time(11, 0), STAFF_ID),
    ]
    both_days = repository.find_for_service(
        BUSINESS_ID, HAIRCUT, DAY, end_date=tomorrow, staff_id=STAFF_ID
    )
    assert [(r.slot_date, r.start_time) for r in both_days] == [
        (DAY, time(9, 0)),
        (DAY, time(11, 0)),
        (tomorrow, time(8, 0)),
    ]
    assert repository.find_one(BUSINESS_ID, STAFF_ID, TRIM, DAY, time(9, 0)) is not None
    assert repository.find_one(BUSINESS_ID, STAFF_ID, TRIM, DAY, time(9, 15)) is None


def test_delete_overlapping_and_before(db):
    repository = RepositoryFactory.create_bookable_slot_repository(db)
    yesterday = DAY - timedelta(days=1)
    repository.replace_for_staff_on(STAFF_ID, DAY, [offer("09:00"), offer("10:00"), offer("11:00")])
    repository.replace_for_staff_on(STAFF_ID, yesterday, [offer("09:00", on_date=yesterday)])
    db.commit()

    removed = repository.delete_overlapping(STAFF_ID, DAY, TimeSlot(time(9, 30), time(10, 30)))
    purged = repository.delete_before(DAY)
    db.commit()

    assert removed == 2
    assert purged == 1
    assert [r.start_time for r in repository.find_for_staff(STAFF_ID, DAY)] == [time(11, 0)]


def test_schedule_replace_and_order(db):
    repository = RepositoryFactory.create_staff_schedule_repository(db)
    entries = [
        ScheduleEntry(BUSINESS_ID, STAFF_ID, DAY, time(11, 0), time(12, 0), True),
        ScheduleEntry(
            BUSINESS_ID,
            STAFF_ID,
            DAY,
            time(10, 0),
            time(11, 0),
            False,
            appointment_id="appt-1",
            client_name="Carol",
        ),
    ]

    repository.replace_for_staff_on(STAFF_ID, DAY, entries)
    db.commit()

    rows = repository.find_for_staff_on(STAFF_ID, DAY)
    assert [(r.start_time, r.is_available, r.client_name) for r in rows] == [
        (time(10, 0), False, "Carol"),
        (time(11, 0), True, None),
    ]


def test_client_view_upsert(db):
    repository = RepositoryFactory.create_client_appointment_view_repository(db)
    values = {
        "id": "appt-1",
        "client_id": "client-1",
        "business_id": BUSINESS_ID,
        "business_name": "Downtown Cuts",
        "service_id": HAIRCUT,
        "service_name": "Haircut",
        "staff_id": STAFF_ID,
        "staff_name": "Alice",
        "appointment_date": DAY,
        "start_time": time(10, 0),
        "end_time": time(11, 0),
        "status": "SCHEDULED",
    }
    repository.upsert(values)
    db.commit()

    repository.upsert({**values, "status": "CONFIRMED"})
    db.commit()

    (view,) = repository.find_for_client("client-1")
    assert view.status == "CONFIRMED"
    assert repository.find_for_client("client-1", start_date=DAY + timedelta(days=1)) == []
