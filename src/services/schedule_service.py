"""
ScheduleService - slot availability and the reservation transaction.

This service handles:
- Availability queries for a doctor on a given date
- Atomic reservation of a slot (by id or by doctor/date/time)
- Atomic release of a booked slot

Every state change is a single guarded UPDATE whose WHERE clause includes
the expected current status. Two concurrent reservations of the same slot
therefore cannot both succeed: the loser's UPDATE matches zero rows and is
reported as SlotUnavailableError.
"""
from datetime import date, time, datetime
from typing import Callable, List, Optional, Type

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.orm import Session
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from models.database import Schedule, SlotStatus, utc_now
from models.schemas import ScheduleInfo, ReservationResult, ReleaseResult
from services.security import SecurityHasher
from error_handling.exceptions import (
    BookingSystemError,
    BookingValidationError,
    SlotNotFoundError,
    SlotUnavailableError,
    NotBookedError,
    DatabaseError,
)
from error_handling.handlers import retry_on_db_error
from error_handling.result import Outcome


class ScheduleService:
    """
    Service class owning every write to schedule slots.

    No other component updates Schedule rows; the dialogue only requests
    transitions through reserve, reserve_by_doctor_date_time and release.
    """

    def __init__(
        self,
        session: Session,
        hasher: Optional[SecurityHasher] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize the schedule service.

        Args:
            session: SQLAlchemy database session for this unit of work
            hasher: Hasher for patient fields (defaults to configured secret)
            clock: Source of the booked_at timestamp
        """
        self.session = session
        self.hasher = hasher or SecurityHasher()
        self.clock = clock

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @retry_on_db_error()
    def _query_available(self, doctor_id: int, on_date: date) -> List[Schedule]:
        return (
            self.session.query(Schedule)
            .filter(
                Schedule.doctor_id == doctor_id,
                Schedule.date == on_date,
                Schedule.status == SlotStatus.AVAILABLE,
            )
            .order_by(Schedule.time.asc(), Schedule.id.asc())
            .all()
        )

    def get_available_schedules_by_doctor(self, doctor_id: int, on_date: date) -> List[ScheduleInfo]:
        """
        Return the doctor's available slots on a date, ordered by time.

        The order defines the numbering shown to the patient.

        Raises:
            DatabaseError: If the query keeps failing after retries
        """
        try:
            schedules = self._query_available(doctor_id, on_date)
        except OperationalError as e:
            raise DatabaseError(
                f"Failed to list schedules: {e}",
                operation="get_available_schedules_by_doctor",
                original_error=e
            )
        return [ScheduleInfo.model_validate(schedule) for schedule in schedules]

    def get_schedule_by_id(self, slot_id: int) -> Schedule:
        """
        Load a slot with its current persisted state.

        Raises:
            SlotNotFoundError: If no slot has this id
        """
        schedule = self.session.execute(
            select(Schedule)
            .where(Schedule.id == slot_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

        if schedule is None:
            raise SlotNotFoundError(slot_id)
        return schedule

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def reserve(self, slot_id: int, patient_name: str, patient_phone: str) -> Outcome[ReservationResult]:
        """
        Book a slot by id if it is still available.

        Args:
            slot_id: Schedule slot id
            patient_name: Plaintext patient name (stored hashed)
            patient_phone: Plaintext patient phone (stored hashed)

        Returns:
            Outcome with ReservationResult echoing the plaintext values, or
            SlotNotFoundError / SlotUnavailableError / BookingValidationError
        """
        return self._reserve(
            criteria=(Schedule.id == slot_id,),
            slot_ref=slot_id,
            patient_name=patient_name,
            patient_phone=patient_phone,
        )

    def reserve_by_doctor_date_time(
        self,
        doctor_id: int,
        on_date: date,
        at_time: time,
        patient_name: str,
        patient_phone: str,
    ) -> Outcome[ReservationResult]:
        """
        Book a slot identified by its natural key (doctor, date, time).

        Same contract as reserve, for callers that never saw the slot id.
        """
        return self._reserve(
            criteria=(
                Schedule.doctor_id == doctor_id,
                Schedule.date == on_date,
                Schedule.time == at_time,
            ),
            slot_ref={"doctor_id": doctor_id, "date": on_date.isoformat(), "time": at_time.isoformat()},
            patient_name=patient_name,
            patient_phone=patient_phone,
        )

    def release(self, slot_id: int) -> Outcome[ReleaseResult]:
        """
        Return a booked slot to the available pool, clearing patient data.

        Returns:
            Outcome with ReleaseResult, or SlotNotFoundError / NotBookedError
        """
        criteria = (Schedule.id == slot_id,)
        stmt = (
            update(Schedule)
            .where(*criteria, Schedule.status == SlotStatus.BOOKED)
            .values(
                status=SlotStatus.AVAILABLE,
                patient_name=None,
                patient_phone=None,
                booked_at=None,
            )
            .execution_options(synchronize_session=False)
        )

        try:
            result = self.session.execute(stmt)
            if result.rowcount != 1:
                error = self._classify_miss(criteria, slot_id, NotBookedError)
                self.session.rollback()
                logger.info(f"Release of slot {slot_id} rejected: {error.message}")
                return Outcome.failure(error)

            row = self._slot_key_row(criteria)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DatabaseError(
                f"Release of slot {slot_id} failed: {e}",
                operation="release",
                original_error=e
            )

        logger.info(f"Slot {slot_id} released")
        return Outcome.success(
            ReleaseResult(id=row.id, doctor_id=row.doctor_id, date=row.date, time=row.time)
        )

    def _reserve(self, criteria: tuple, slot_ref, patient_name: str, patient_phone: str) -> Outcome[ReservationResult]:
        if not patient_name or not str(patient_name).strip():
            return Outcome.failure(BookingValidationError(
                "Patient name is required", field="patient_name"
            ))
        if not patient_phone or not str(patient_phone).strip():
            return Outcome.failure(BookingValidationError(
                "Patient phone is required", field="patient_phone"
            ))

        # Hash outside the transaction so the row lock is held briefly
        hashed_name = self.hasher.hash_name(patient_name)
        hashed_phone = self.hasher.hash_phone(patient_phone)
        booked_at = self.clock()

        stmt = (
            update(Schedule)
            .where(*criteria, Schedule.status == SlotStatus.AVAILABLE)
            .values(
                status=SlotStatus.BOOKED,
                patient_name=hashed_name,
                patient_phone=hashed_phone,
                booked_at=booked_at,
            )
            .execution_options(synchronize_session=False)
        )

        try:
            result = self.session.execute(stmt)
            if result.rowcount != 1:
                error = self._classify_miss(criteria, slot_ref, SlotUnavailableError)
                self.session.rollback()
                logger.info(f"Reservation of slot {slot_ref} rejected: {error.message}")
                return Outcome.failure(error)

            row = self._slot_key_row(criteria)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DatabaseError(
                f"Reservation of slot {slot_ref} failed: {e}",
                operation="reserve",
                original_error=e
            )

        logger.info(f"Slot {row.id} reserved for doctor {row.doctor_id} at {row.date} {row.time}")
        return Outcome.success(ReservationResult(
            id=row.id,
            doctor_id=row.doctor_id,
            date=row.date,
            time=row.time,
            patient_name=patient_name,
            patient_phone=str(patient_phone),
            booked_at=booked_at,
        ))

    def _slot_key_row(self, criteria: tuple):
        return self.session.execute(
            select(Schedule.id, Schedule.doctor_id, Schedule.date, Schedule.time).where(*criteria)
        ).one()

    def _classify_miss(
        self,
        criteria: tuple,
        slot_ref,
        status_error: Type[BookingSystemError],
    ) -> BookingSystemError:
        """Explain why a guarded update matched no row."""
        row = self.session.execute(
            select(Schedule.id, Schedule.status).where(*criteria)
        ).first()

        if row is None:
            return SlotNotFoundError(slot_ref)
        return status_error(slot_ref, status=row.status)
