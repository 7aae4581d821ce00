"""
Models package - SQLAlchemy ORM models and Pydantic schemas.
"""
from .database import (
    Base,
    Doctor,
    Schedule,
    SlotStatus,
    init_db,
    create_tables,
    get_session_factory,
    get_db_session,
    get_db,
)

from .schemas import (
    IntentInfo,
    OutputContext,
    QueryResult,
    WebhookRequest,
    WebhookResponse,
    DoctorInfo,
    ScheduleInfo,
    ReservationResult,
    ReleaseResult,
)

__all__ = [
    # Database models
    "Base",
    "Doctor",
    "Schedule",
    "SlotStatus",
    # Database utilities
    "init_db",
    "create_tables",
    "get_session_factory",
    "get_db_session",
    "get_db",
    # Pydantic schemas
    "IntentInfo",
    "OutputContext",
    "QueryResult",
    "WebhookRequest",
    "WebhookResponse",
    "DoctorInfo",
    "ScheduleInfo",
    "ReservationResult",
    "ReleaseResult",
]
