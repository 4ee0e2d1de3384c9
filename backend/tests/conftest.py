# backend/tests/conftest.py
"""
Shared pytest fixtures.

Every test that touches the database gets its own file-backed SQLite
database under ``tmp_path`` with the full schema created from the ORM
metadata. Pure domain tests need none of this.
"""

import os

os.environ.setdefault("SLOTBOOK_ENVIRONMENT", "test")
os.environ.setdefault("SLOTBOOK_DATABASE_URL", "sqlite:///:memory:")

from decimal import Decimal

import pytest

from slotbook.core.enums import SlotStepKind
from slotbook.database import Base, build_engine, build_session_factory
from slotbook.domain.slot_generation import SlotStepPolicy
import slotbook.models  # noqa: F401
from slotbook.services.appointment_query_service import AppointmentQueryService
from slotbook.services.availability_service import AvailabilityService
from slotbook.services.booking_service import BookingService
from slotbook.services.directory import StaticDirectory
from slotbook.services.read_model_service import AvailabilityReadModelService
from slotbook.services.slot_query_service import SlotQueryService
from tests.builders import (
    BUSINESS_ID,
    CLIENT_ID,
    COLOUR,
    HAIRCUT,
    OTHER_STAFF_ID,
    STAFF_ID,
    TRIM,
    RecordingBus,
    clock,
)


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'slotbook_test.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def directory() -> StaticDirectory:
    directory = StaticDirectory()
    directory.add_business(BUSINESS_ID, "Downtown Cuts")
    directory.add_staff(STAFF_ID, "Alice", BUSINESS_ID)
    directory.add_staff(OTHER_STAFF_ID, "Bob", BUSINESS_ID)
    directory.add_service(HAIRCUT, "Haircut", 60, Decimal("40.00"))
    directory.add_service(TRIM, "Beard trim", 30, Decimal("15.00"))
    directory.add_service(COLOUR, "Colour", 90, Decimal("80.00"))
    directory.add_client(CLIENT_ID, "Carol")
    directory.assign_service(STAFF_ID, HAIRCUT)
    directory.assign_service(STAFF_ID, TRIM)
    directory.assign_service(OTHER_STAFF_ID, HAIRCUT)
    return directory


@pytest.fixture
def bus() -> RecordingBus:
    return RecordingBus()


@pytest.fixture
def step_policy() -> SlotStepPolicy:
    return SlotStepPolicy(SlotStepKind.FIXED_GRID, 15)


@pytest.fixture
def projector(session_factory, directory, bus, step_policy) -> AvailabilityReadModelService:
    projector = AvailabilityReadModelService(
        directory, session_factory, step_policy=step_policy, clock=clock
    )
    projector.register(bus)
    return projector


@pytest.fixture
def slot_queries(db) -> SlotQueryService:
    return SlotQueryService(db)


@pytest.fixture
def booking_service(db, directory, bus, slot_queries) -> BookingService:
    return BookingService(db, directory, bus, slot_query_service=slot_queries, clock=clock)


@pytest.fixture
def availability_service(db, bus) -> AvailabilityService:
    return AvailabilityService(db, bus)


@pytest.fixture
def appointment_queries(db, directory) -> AppointmentQueryService:
    return AppointmentQueryService(db, directory, clock=clock)
