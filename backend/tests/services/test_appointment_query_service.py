from datetime import time, timedelta
from decimal import Decimal

import pytest

from slotbook.core.enums import AppointmentStatus, RequesterRole
from slotbook.core.exceptions import (
    AccessDeniedException,
    NotFoundException,
    ValidationException,
)
from slotbook.schemas.commands import CancelAppointment, ConfirmAppointment
from tests.builders import (
    CLIENT_ID,
    DAY,
    OTHER_CLIENT_ID,
    STAFF_ID,
    TODAY,
    TRIM,
    availability_command,
    booking_command,
)

LAST_WEEK = TODAY - timedelta(days=7)


@pytest.fixture
def history(availability_service, booking_service):
    """Four of Carol's appointments: two open, one cancelled, one in the past."""
    for on_date in (LAST_WEEK, DAY, DAY + timedelta(days=1), DAY + timedelta(days=2)):
        availability_service.set_availability(
            availability_command(("09:00", "12:00"), on_date=on_date)
        )
    past = booking_service.book(booking_command(time(9, 0), on_date=LAST_WEEK))
    soon = booking_service.book(booking_command(time(10, 0)))
    confirmed = booking_service.book(booking_command(time(9, 0), on_date=DAY + timedelta(days=1)))
    booking_service.confirm(ConfirmAppointment(appointment_id=confirmed.id))
    cancelled = booking_service.book(booking_command(time(9, 0), on_date=DAY + timedelta(days=2)))
    booking_service.cancel(
        CancelAppointment(
            appointment_id=cancelled.id,
            requester_id=CLIENT_ID,
            requester_role=RequesterRole.CLIENT,
        )
    )
    return {"past": past, "soon": soon, "confirmed": confirmed, "cancelled": cancelled}


def test_get_appointment_resolves_names(history, appointment_queries):
    view = appointment_queries.get_appointment(history["soon"].id, client_id=CLIENT_ID)

    assert view.client_name == "Carol"
    assert view.staff_name == "Alice"
    assert view.service_name == "Haircut"
    assert view.business_name == "Downtown Cuts"
    assert view.price == Decimal("40.00")
    assert view.status == AppointmentStatus.SCHEDULED


def test_get_appointment_checks_owner(history, appointment_queries):
    with pytest.raises(AccessDeniedException):
        appointment_queries.get_appointment(history["soon"].id, client_id=OTHER_CLIENT_ID)


def test_get_missing_appointment(appointment_queries):
    with pytest.raises(NotFoundException) as exc_info:
        appointment_queries.get_appointment("missing")

    assert exc_info.value.code == "APPOINTMENT_NOT_FOUND"


def test_overview_splits_upcoming_and_past(history, appointment_queries):
    overview = appointment_queries.get_client_overview(CLIENT_ID)

    assert [v.id for v in overview.upcoming] == [history["soon"].id, history["confirmed"].id]
    assert [v.id for v in overview.past] == [history["cancelled"].id, history["past"].id]


def test_overview_within_range(history, appointment_queries):
    overview = appointment_queries.get_client_overview(
        CLIENT_ID, start_date=DAY, end_date=DAY + timedelta(days=1)
    )

    assert [v.id for v in overview.upcoming] == [history["soon"].id, history["confirmed"].id]
    assert overview.past == []


def test_upcoming_skips_cancelled_and_past(history, appointment_queries):
    upcoming = appointment_queries.get_client_upcoming_appointments(CLIENT_ID)

    assert [v.id for v in upcoming] == [history["soon"].id, history["confirmed"].id]


def test_all_client_appointments_in_date_order(history, appointment_queries):
    views = appointment_queries.get_client_appointments(CLIENT_ID)

    assert [v.appointment_date for v in views] == sorted(v.appointment_date for v in views)
    assert len(views) == 4
    assert appointment_queries.get_client_appointments(OTHER_CLIENT_ID) == []


def test_between_rejects_inverted_range(appointment_queries):
    with pytest.raises(ValidationException) as exc_info:
        appointment_queries.get_client_appointments_between(CLIENT_ID, DAY, TODAY)

    assert exc_info.value.code == "INVALID_DATE_RANGE"


def test_staff_day_listing(history, booking_service, appointment_queries):
    booking_service.book(
        booking_command(time(11, 0), service_id=TRIM, client_id=OTHER_CLIENT_ID)
    )

    views = appointment_queries.get_staff_appointments_for_date(STAFF_ID, DAY)

    assert [(v.start_time, v.client_name) for v in views] == [
        (time(10, 0), "Carol"),
        (time(11, 0), "Client"),
    ]
