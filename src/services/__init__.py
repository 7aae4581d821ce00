"""
Services package - Business logic over the slot store.
"""
from .security import SecurityHasher
from .doctor_service import DoctorService
from .schedule_service import ScheduleService

__all__ = [
    "SecurityHasher",
    "DoctorService",
    "ScheduleService",
]
