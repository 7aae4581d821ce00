"""
DoctorService - read access to the clinic's doctors.
"""
from typing import Any, List

from sqlalchemy.orm import Session
from sqlalchemy.exc import OperationalError

from models.database import Doctor
from models.schemas import DoctorInfo
from error_handling.exceptions import DatabaseError, InvalidSelectionError
from error_handling.handlers import retry_on_db_error
from error_handling.result import Outcome


class DoctorService:
    """Lists active doctors and resolves the patient's numbered choice."""

    def __init__(self, session: Session):
        self.session = session

    @retry_on_db_error()
    def _query_active_doctors(self) -> List[Doctor]:
        return (
            self.session.query(Doctor)
            .filter(Doctor.active.is_(True))
            .order_by(Doctor.name.asc(), Doctor.id.asc())
            .all()
        )

    def get_active_doctors(self) -> List[DoctorInfo]:
        """
        Return active doctors ordered by name.

        The order is the numbering shown to the patient, so it must be stable
        between the listing turn and the selection turn.

        Raises:
            DatabaseError: If the query keeps failing after retries
        """
        try:
            doctors = self._query_active_doctors()
        except OperationalError as e:
            raise DatabaseError(
                f"Failed to list doctors: {e}",
                operation="get_active_doctors",
                original_error=e
            )
        return [DoctorInfo.model_validate(doctor) for doctor in doctors]

    def get_doctor_by_position(self, selector: Any) -> Outcome[DoctorInfo]:
        """
        Resolve a 1-based choice against the active-doctor list.

        Args:
            selector: Parsed positive integer, or None when unparseable

        Returns:
            Outcome with the chosen doctor, or InvalidSelectionError
        """
        doctors = self.get_active_doctors()
        if not isinstance(selector, int) or not 1 <= selector <= len(doctors):
            return Outcome.failure(InvalidSelectionError(selector, len(doctors)))
        return Outcome.success(doctors[selector - 1])
