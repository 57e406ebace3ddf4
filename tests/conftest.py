"""Pytest fixtures for wash ledger tests."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from wash_ledger.config import Settings
from wash_ledger.events import DomainEvent, EventEmitter
from wash_ledger.models import (
    AppUser,
    Base,
    ENTRY_CUTOFF_KEY,
    Location,
    SystemSetting,
    Vehicle,
    VehicleType,
)
from wash_ledger.services.wash_service import WashService

# In-memory SQLite shared by every session of a test
TEST_DATABASE_URL = "sqlite://"

TODAY = date(2024, 3, 10)


class FrozenClock:
    """Deterministic UTC clock; advances by `step` on every call."""

    def __init__(
        self,
        start: datetime = datetime(2024, 3, 10, 9, 0, tzinfo=timezone.utc),
        step: timedelta = timedelta(seconds=1),
    ):
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = current + self.step
        return current


@dataclass
class World:
    """Seeded catalog rows."""

    manager: AppUser
    admin: AppUser
    e1: AppUser
    e2: AppUser
    loner: AppUser
    north: Location
    south: Location
    t101: Vehicle
    t102: Vehicle
    s201: Vehicle
    retired: Vehicle


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url=TEST_DATABASE_URL,
        host="127.0.0.1",
        port=8000,
        debug=False,
        log_level="DEBUG",
        undo_window_seconds=5.0,
        cutoff_override_role="manager",
        cutoff_admin_role="admin",
    )


@pytest.fixture
def engine():
    """Create test database engine with the full schema."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker[Session]:
    return sessionmaker(engine, expire_on_commit=False, autoflush=False)


@pytest.fixture
def session(session_factory) -> Generator[Session, None, None]:
    """Create a database session for each test."""
    with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def emitter() -> EventEmitter:
    return EventEmitter()


@pytest.fixture
def events(emitter) -> list[DomainEvent]:
    """Every event emitted during the test, in order."""
    received: list[DomainEvent] = []
    emitter.on_all(received.append)
    return received


@pytest.fixture
def world(session_factory) -> World:
    """Users, locations and vehicles used across tests."""
    with session_factory() as session:
        manager = AppUser(email="mgr@example.com", name="Mia Manager", role="manager")
        admin = AppUser(email="admin@example.com", name="Ada Admin", role="admin")
        session.add_all([manager, admin])
        session.flush()

        e1 = AppUser(
            email="e1@example.com", name="Eli One", role="employee", manager_id=manager.id
        )
        e2 = AppUser(
            email="e2@example.com", name="Eve Two", role="employee", manager_id=manager.id
        )
        loner = AppUser(email="loner@example.com", name="Lou Loner", role="employee")

        north = Location(name="North Yard")
        south = Location(name="South Yard")
        truck = VehicleType(type_name="Truck")
        session.add_all([e1, e2, loner, north, south, truck])
        session.flush()

        t101 = Vehicle(vehicle_number="T-101", vehicle_type_id=truck.id, home_location_id=north.id)
        t102 = Vehicle(vehicle_number="T-102", vehicle_type_id=truck.id, home_location_id=north.id)
        s201 = Vehicle(vehicle_number="S-201", vehicle_type_id=truck.id, home_location_id=south.id)
        retired = Vehicle(
            vehicle_number="T-999",
            vehicle_type_id=truck.id,
            home_location_id=north.id,
            is_active=False,
        )
        session.add_all([t101, t102, s201, retired])
        session.commit()

        return World(
            manager=manager,
            admin=admin,
            e1=e1,
            e2=e2,
            loner=loner,
            north=north,
            south=south,
            t101=t101,
            t102=t102,
            s201=s201,
            retired=retired,
        )


@pytest.fixture
def set_cutoff(session_factory):
    """Write the cutoff setting directly, bypassing the admin check."""

    def _set(cutoff: date) -> None:
        with session_factory() as session:
            session.add(
                SystemSetting(setting_key=ENTRY_CUTOFF_KEY, setting_value=cutoff.isoformat())
            )
            session.commit()

    return _set


@pytest.fixture
def service(session, settings, emitter, clock, today, world) -> WashService:
    return WashService(
        session, settings, emitter=emitter, today=lambda: today, clock=clock
    )
