from datetime import time
from unittest.mock import patch

import pytest

from slotbook.core.exceptions import ServiceException
from slotbook.events.publisher import InProcessEventBus
from slotbook.schemas.responses import BookingOutcome
from slotbook.services.booking_application_service import (
    RACE_LOST_MESSAGE,
    SLOT_GONE_MESSAGE,
    SYSTEM_ERROR_MESSAGE,
    BookingApplicationService,
)
from slotbook.services.booking_service import BookingService
from tests.builders import (
    HAIRCUT,
    OTHER_CLIENT_ID,
    OTHER_STAFF_ID,
    STAFF_ID,
    availability_command,
    booking_command,
    clock,
)


@pytest.fixture
def facade(booking_service, slot_queries, appointment_queries, availability_service, projector):
    availability_service.set_availability(availability_command(("09:00", "12:00")))
    availability_service.set_availability(
        availability_command(("09:00", "12:00"), staff_id=OTHER_STAFF_ID)
    )
    return BookingApplicationService(booking_service, slot_queries, appointment_queries)


def test_success_returns_view(facade):
    result = facade.book(booking_command(time(10, 0), notes="Fringe only"))

    assert result.succeeded
    assert result.outcome == BookingOutcome.SUCCESS
    assert result.appointment.client_name == "Carol"
    assert result.appointment.end_time == time(11, 0)
    assert result.appointment.notes == "Fringe only"


def test_slot_missing_from_read_model(facade):
    result = facade.book(booking_command(time(11, 30)))

    assert result.outcome == BookingOutcome.SLOT_UNAVAILABLE
    assert result.message == SLOT_GONE_MESSAGE
    assert result.error_code == "SLOT_UNAVAILABLE"
    assert result.alternatives[0].start_time == time(11, 0)
    assert {a.staff_id for a in result.alternatives} == {STAFF_ID}


def test_race_lost_after_read_model_check(facade, db, directory):
    # Books without updating the read model, as a concurrent request would
    silent = BookingService(db, directory, InProcessEventBus(), clock=clock)
    silent.book(booking_command(time(10, 0), client_id=OTHER_CLIENT_ID))

    result = facade.book(booking_command(time(10, 0)))

    assert result.outcome == BookingOutcome.SLOT_UNAVAILABLE
    assert result.message == RACE_LOST_MESSAGE
    assert result.error_code == "SLOT_UNAVAILABLE"
    assert "alternative_slots" not in result.details
    assert result.details["staff_id"] == STAFF_ID


def test_domain_rejection_is_validation_error(facade, directory):
    directory.unassign_service(STAFF_ID, HAIRCUT)

    result = facade.book(booking_command(time(10, 0)))

    assert result.outcome == BookingOutcome.VALIDATION_ERROR
    assert result.error_code == "INELIGIBLE_STAFF"
    assert result.details == {"staff_id": STAFF_ID, "service_id": HAIRCUT}


@pytest.mark.parametrize(
    "failure", [ServiceException("Database operation failed"), RuntimeError("boom")]
)
def test_unexpected_failures_are_system_errors(facade, failure):
    with patch.object(facade.booking_service, "book", side_effect=failure):
        result = facade.book(booking_command(time(10, 0)))

    assert result.outcome == BookingOutcome.SYSTEM_ERROR
    assert result.message == SYSTEM_ERROR_MESSAGE
    assert result.appointment is None
