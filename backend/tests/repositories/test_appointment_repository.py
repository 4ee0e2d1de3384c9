from datetime import time, timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from slotbook.core.enums import AppointmentStatus
from slotbook.domain.appointment import Appointment
from slotbook.domain.time_slot import TimeSlot
from slotbook.repositories.factory import RepositoryFactory
from tests.builders import BUSINESS_ID, CLIENT_ID, DAY, HAIRCUT, OTHER_CLIENT_ID, STAFF_ID


def booked(start: str, end: str, *, client_id=CLIENT_ID, on_date=DAY) -> Appointment:
    return Appointment.schedule(
        BUSINESS_ID,
        client_id,
        STAFF_ID,
        HAIRCUT,
        on_date,
        TimeSlot(time.fromisoformat(start), time.fromisoformat(end)),
    ).state


def test_add_and_get(db):
    repository = RepositoryFactory.create_appointment_repository(db)
    appointment = booked("10:00", "11:00")

    repository.add(appointment)
    db.commit()

    loaded = repository.get(appointment.id)
    assert loaded.id == appointment.id
    assert loaded.status == AppointmentStatus.SCHEDULED
    assert loaded.time_slot == appointment.time_slot
    assert repository.get("missing") is None


def test_same_start_for_same_staff_violates_unique_index(db):
    repository = RepositoryFactory.create_appointment_repository(db)
    repository.add(booked("10:00", "11:00"))
    db.commit()

    with pytest.raises(IntegrityError):
        repository.add(booked("10:00", "10:30", client_id=OTHER_CLIENT_ID))
    db.rollback()


def test_cancelled_appointment_frees_its_start_time(db):
    repository = RepositoryFactory.create_appointment_repository(db)
    first = repository.add(booked("10:00", "11:00"))
    repository.save(first.cancel().state)
    db.commit()

    second = repository.add(booked("10:00", "11:00", client_id=OTHER_CLIENT_ID))
    db.commit()

    assert repository.get(second.id).is_active


def test_save_writes_status_and_notes(db):
    repository = RepositoryFactory.create_appointment_repository(db)
    appointment = repository.add(booked("10:00", "11:00"))
    db.commit()

    repository.save(appointment.cancel(reason="Running late").state)
    db.commit()

    loaded = repository.get(appointment.id)
    assert loaded.status == AppointmentStatus.CANCELLED
    assert loaded.notes == "Cancellation reason: Running late"


def test_find_overlapping_ignores_cancelled_and_touching(db):
    repository = RepositoryFactory.create_appointment_repository(db)
    morning = repository.add(booked("09:00", "10:00"))
    cancelled = repository.add(booked("10:30", "11:30"))
    repository.save(cancelled.cancel().state)
    repository.add(booked("23:00", "00:00"))
    db.commit()

    window = TimeSlot(time(9, 30), time(11, 0))
    assert [a.id for a in repository.find_overlapping(STAFF_ID, DAY, window)] == [morning.id]
    assert repository.find_overlapping(STAFF_ID, DAY, TimeSlot(time(10, 0), time(10, 30))) == []
    late = repository.find_overlapping(STAFF_ID, DAY, TimeSlot(time(23, 30), time(0, 0)))
    assert len(late) == 1


def test_client_queries(db):
    repository = RepositoryFactory.create_appointment_repository(db)
    later = repository.add(booked("09:00", "10:00", on_date=DAY + timedelta(days=3)))
    earlier = repository.add(booked("14:00", "15:00"))
    cancelled = repository.add(booked("16:00", "17:00"))
    repository.save(cancelled.cancel().state)
    repository.add(booked("11:00", "12:00", client_id=OTHER_CLIENT_ID))
    db.commit()

    assert [a.id for a in repository.find_for_client(CLIENT_ID)] == [
        earlier.id,
        cancelled.id,
        later.id,
    ]
    assert [a.id for a in repository.find_for_client_between(CLIENT_ID, DAY, DAY)] == [
        earlier.id,
        cancelled.id,
    ]
    assert [a.id for a in repository.find_upcoming_for_client(CLIENT_ID, DAY)] == [
        earlier.id,
        later.id,
    ]
