"""
SQLAlchemy database models and session management for the clinic booking webhook.
"""
import os
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Generator, Optional
from loguru import logger

from sqlalchemy import (
    create_engine,
    Column,
    Integer,
    String,
    Boolean,
    Date,
    Time,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    UniqueConstraint,
    CheckConstraint,
)
from sqlalchemy.orm import declarative_base, relationship, Session, sessionmaker
from sqlalchemy.engine import Engine

# Create declarative base
Base = declarative_base()

# Database engine and session factory (initialized by init_db)
engine: Engine | None = None
SessionLocal: sessionmaker | None = None


def utc_now() -> datetime:
    """Current UTC time as a naive datetime, matching the DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SlotStatus:
    """Allowed values of Schedule.status."""

    AVAILABLE = "available"
    BOOKED = "booked"
    CANCELLED = "cancelled"

    ALL = (AVAILABLE, BOOKED, CANCELLED)


class Doctor(Base):
    """
    Doctor model. Inactive doctors are never offered in the dialogue.
    """
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    specialty = Column(String(100), nullable=False)
    # Stored hashed, like patient data
    email = Column(String(255), nullable=True)
    phone = Column(String(255), nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    schedules = relationship("Schedule", back_populates="doctor")

    __table_args__ = (
        Index("ix_doctor_active_name", "active", "name"),
    )

    def __repr__(self) -> str:
        return (
            f"<Doctor(id={self.id}, name='{self.name}', "
            f"specialty='{self.specialty}', active={self.active})>"
        )


class Schedule(Base):
    """
    Schedule model representing one bookable (doctor, date, time) slot.

    patient_name, patient_phone and booked_at hold values only while the
    slot is booked; they are one-way hashes, never plaintext.
    """
    __tablename__ = "schedules"

    id = Column(Integer, primary_key=True, autoincrement=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False)
    date = Column(Date, nullable=False)
    time = Column(Time, nullable=False)
    patient_name = Column(String(255), nullable=True)
    patient_phone = Column(String(255), nullable=True)
    status = Column(
        Enum(*SlotStatus.ALL, name="schedule_status"),
        nullable=False,
        default=SlotStatus.AVAILABLE,
    )
    booked_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    doctor = relationship("Doctor", back_populates="schedules")

    __table_args__ = (
        # Natural key used by reserve-by-doctor-date-time
        UniqueConstraint("doctor_id", "date", "time", name="uq_schedule_doctor_date_time"),
        # Patient fields are set iff the slot is booked
        CheckConstraint(
            "(status = 'booked' AND patient_name IS NOT NULL AND patient_phone IS NOT NULL "
            "AND booked_at IS NOT NULL) OR "
            "(status <> 'booked' AND patient_name IS NULL AND patient_phone IS NULL "
            "AND booked_at IS NULL)",
            name="ck_schedule_patient_iff_booked",
        ),
        # Index for the availability query
        Index("ix_schedule_doctor_date_status", "doctor_id", "date", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<Schedule(id={self.id}, doctor_id={self.doctor_id}, date={self.date}, "
            f"time={self.time}, status='{self.status}')>"
        )


def get_database_url() -> str:
    """
    Get database URL from settings or the environment.

    Returns:
        Database connection string
    """
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        return database_url

    from config import get_settings
    return get_settings().database_url


def init_db(database_url: str | None = None) -> Engine:
    """
    Initialize database engine and session factory.

    Args:
        database_url: Optional database connection string. If not provided,
                     the configured DATABASE_URL is used.

    Returns:
        SQLAlchemy Engine instance
    """
    global engine, SessionLocal

    if database_url is None:
        database_url = get_database_url()

    engine_kwargs = {"echo": False, "pool_pre_ping": True}
    if database_url.startswith("sqlite"):
        # Turns are served from a thread pool
        engine_kwargs["connect_args"] = {"check_same_thread": False}
    else:
        engine_kwargs["pool_size"] = 5
        engine_kwargs["max_overflow"] = 10

    engine = create_engine(database_url, **engine_kwargs)

    SessionLocal = sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )

    logger.info(f"Database engine initialized ({engine.url.get_backend_name()})")
    return engine


def create_tables() -> None:
    """
    Create all tables in the database.

    Raises:
        RuntimeError: If database engine is not initialized
    """
    if engine is None:
        raise RuntimeError("Database engine not initialized. Call init_db() first.")

    Base.metadata.create_all(bind=engine)


def get_session_factory() -> sessionmaker:
    """
    Return the configured session factory.

    Raises:
        RuntimeError: If session factory is not initialized
    """
    if SessionLocal is None:
        raise RuntimeError("Session factory not initialized. Call init_db() first.")
    return SessionLocal


@contextmanager
def get_db_session(factory: Optional[sessionmaker] = None) -> Generator[Session, None, None]:
    """
    Context manager for database sessions with automatic cleanup.

    Args:
        factory: Session factory to use instead of the global one

    Yields:
        SQLAlchemy Session instance

    Example:
        with get_db_session() as session:
            doctor = session.query(Doctor).first()
    """
    session = (factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()



def get_db() -> Generator[Session, None, None]:
    """
    Generator form of get_db_session over the global factory, usable as a
    FastAPI dependency.

    Yields:
        SQLAlchemy Session instance
    """
    with get_db_session() as session:
        yield session
