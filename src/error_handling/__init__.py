"""
Error handling module for the clinic booking webhook.

This module provides the error handling infrastructure including:
- Custom exception hierarchy with typed error kinds
- Outcome type for slot store transactions
- User-facing (Portuguese) error messages
- Logging configuration and error handlers

Main Components:
    - exceptions: Custom exception classes for all error scenarios
    - result: Outcome carrying a payload or a typed error
    - error_messages: User-facing message generation
    - handlers: Retry decorator and turn error logging
    - logging_config: loguru sinks and audit helpers
"""

from .exceptions import (
    ErrorKind,
    BookingSystemError,
    BookingValidationError,
    InvalidSelectionError,
    SlotNotFoundError,
    SlotUnavailableError,
    NotBookedError,
    IncompleteDraftError,
    DatabaseError,
    InvalidRequestError,
)

from .result import Outcome

from .error_messages import (
    GENERIC_APOLOGY,
    NOT_UNDERSTOOD,
    INCOMPLETE_DRAFT,
    format_time_short,
    format_date_br,
    get_error_message,
    booking_failed_message,
    cancellation_failed_message,
)

from .handlers import (
    retry_on_db_error,
    log_error,
)

from .logging_config import (
    init_logging,
    LoggingProfile,
    log_booking_event,
    log_conversation_event,
    log_error_with_context,
    log_context,
)

__all__ = [
    # Exceptions
    "ErrorKind",
    "BookingSystemError",
    "BookingValidationError",
    "InvalidSelectionError",
    "SlotNotFoundError",
    "SlotUnavailableError",
    "NotBookedError",
    "IncompleteDraftError",
    "DatabaseError",
    "InvalidRequestError",

    # Result type
    "Outcome",

    # Error Messages
    "GENERIC_APOLOGY",
    "NOT_UNDERSTOOD",
    "INCOMPLETE_DRAFT",
    "format_time_short",
    "format_date_br",
    "get_error_message",
    "booking_failed_message",
    "cancellation_failed_message",

    # Error Handlers
    "retry_on_db_error",
    "log_error",

    # Logging
    "init_logging",
    "LoggingProfile",
    "log_booking_event",
    "log_conversation_event",
    "log_error_with_context",
    "log_context",
]
