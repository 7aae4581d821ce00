"""
Pytest configuration and shared fixtures.
"""
import sys
from pathlib import Path
from datetime import date, time, datetime, timedelta
from types import SimpleNamespace
from typing import Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# Add src directory to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from models.database import Base, Doctor, Schedule, SlotStatus
from models.schemas import OutputContext
from services.security import SecurityHasher
from services.doctor_service import DoctorService
from services.schedule_service import ScheduleService
from conversation.booking_flow import BookingFlow
from conversation.session_store import SessionStore
from conversation.turn import Turn


TODAY = date(2025, 3, 10)
BOOKED_AT = datetime(2025, 3, 9, 12, 0)
SESSION = "projects/clinic/agent/sessions/abc123"


@pytest.fixture(scope="function")
def db_engine():
    """
    In-memory SQLite engine with all tables.

    A single shared connection lets sessions opened from other threads
    (the web test client) see the same data.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine) -> sessionmaker:
    return sessionmaker(bind=db_engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture(scope="function")
def db_session(session_factory) -> Generator[Session, None, None]:
    """Database session for a test, closed afterwards."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def hasher() -> SecurityHasher:
    return SecurityHasher(secret="test-secret")


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def seeded(session_factory) -> SimpleNamespace:
    """
    Two active doctors and one inactive, with slots around TODAY.

    Ana Souza (position 1) has 09:00, 09:30 and 10:00 available today,
    11:00 booked today and 09:00 available tomorrow. Bruno Lima
    (position 2) has 14:00 available today.
    """
    session = session_factory()
    try:
        ana = Doctor(name="Ana Souza", specialty="Clínica Geral")
        bruno = Doctor(name="Bruno Lima", specialty="Cardiologia")
        carlos = Doctor(name="Carlos Dias", specialty="Ortopedia", active=False)
        session.add_all([bruno, carlos, ana])
        session.flush()

        # Inserted out of time order on purpose
        ana_1000 = Schedule(doctor_id=ana.id, date=TODAY, time=time(10, 0))
        ana_0900 = Schedule(doctor_id=ana.id, date=TODAY, time=time(9, 0))
        ana_0930 = Schedule(doctor_id=ana.id, date=TODAY, time=time(9, 30))
        ana_1100_booked = Schedule(
            doctor_id=ana.id,
            date=TODAY,
            time=time(11, 0),
            status=SlotStatus.BOOKED,
            patient_name="hashed-name",
            patient_phone="hashed-phone",
            booked_at=BOOKED_AT,
        )
        ana_tomorrow = Schedule(doctor_id=ana.id, date=TODAY + timedelta(days=1), time=time(9, 0))
        bruno_1400 = Schedule(doctor_id=bruno.id, date=TODAY, time=time(14, 0))
        carlos_0800 = Schedule(doctor_id=carlos.id, date=TODAY, time=time(8, 0))
        session.add_all([ana_1000, ana_0900, ana_0930, ana_1100_booked, ana_tomorrow, bruno_1400, carlos_0800])
        session.commit()

        return SimpleNamespace(
            ana=ana.id,
            bruno=bruno.id,
            carlos=carlos.id,
            ana_0900=ana_0900.id,
            ana_0930=ana_0930.id,
            ana_1000=ana_1000.id,
            ana_1100_booked=ana_1100_booked.id,
            ana_tomorrow=ana_tomorrow.id,
            bruno_1400=bruno_1400.id,
        )
    finally:
        session.close()


@pytest.fixture
def store() -> SessionStore:
    return SessionStore(capacity=10)


@pytest.fixture
def schedule_service(db_session, hasher) -> ScheduleService:
    return ScheduleService(db_session, hasher=hasher, clock=lambda: BOOKED_AT)


@pytest.fixture
def flow(db_session, hasher, store, today) -> BookingFlow:
    return BookingFlow(
        doctor_service=DoctorService(db_session),
        schedule_service=ScheduleService(db_session, hasher=hasher, clock=lambda: BOOKED_AT),
        store=store,
        today=lambda: today,
    )


def make_context(logical_name: str, parameters: dict, lifespan: int = 3, session: str = SESSION) -> OutputContext:
    return OutputContext(
        name=f"{session}/contexts/{logical_name}",
        lifespan_count=lifespan,
        parameters=parameters,
    )


def make_turn(intent: str, parameters: dict = None, contexts: list = None, session: str = SESSION) -> Turn:
    return Turn(
        session_id=session,
        intent_name=intent,
        parameters=parameters or {},
        contexts=contexts or [],
    )


def context_by_name(response, logical_name: str):
    """Return the emitted context for a logical name, or None."""
    for context in response.output_contexts or []:
        if context.name.endswith(f"/contexts/{logical_name}"):
            return context
    return None
