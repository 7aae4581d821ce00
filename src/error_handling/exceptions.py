"""
Custom Exception Classes for the Clinic Booking Webhook.

This module defines exception classes for different error categories:
- User input errors (missing or invalid fields, reprompt the user)
- Slot store errors (slot not found, slot no longer available, not booked)
- Dialogue state errors (confirmation with an incomplete draft)
- Technical errors (database, malformed platform payloads)

Each exception carries an ErrorKind so the dialogue handlers can branch on
the kind of failure, plus context for logging.
"""

from enum import Enum
from typing import Optional, Any, Dict


class ErrorKind(str, Enum):
    """Categories of failure surfaced to the dialogue handlers."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    STATE = "state"
    INTERNAL = "internal"


class BookingSystemError(Exception):
    """Base exception for all booking system errors."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(
        self,
        message: str,
        user_message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        recoverable: bool = True
    ):
        """
        Initialize booking system error.

        Args:
            message: Technical error message for logging
            user_message: User-facing message for the fulfillment text
            context: Additional context for logging
            recoverable: Whether the dialogue can continue after the error
        """
        super().__init__(message)
        self.message = message
        self.user_message = user_message or message
        self.context = context or {}
        self.recoverable = recoverable


# ============================================================================
# User Input Errors
# ============================================================================

class BookingValidationError(BookingSystemError):
    """
    Raised when a user-supplied field is missing or invalid.

    The handler reprompts and the dialogue state does not change.
    """

    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        message: str,
        user_message: Optional[str] = None,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs
    ):
        context = {"field": field, "value": value, **kwargs}
        super().__init__(message, user_message, context, recoverable=True)
        self.field = field
        self.value = value


class InvalidSelectionError(BookingValidationError):
    """Raised when a 1-based choice falls outside the offered list."""

    def __init__(self, selector: Any, list_size: int, **kwargs):
        super().__init__(
            message=f"Selector {selector!r} outside 1..{list_size}",
            field="selector",
            value=selector,
            list_size=list_size,
            **kwargs
        )
        self.selector = selector
        self.list_size = list_size


# ============================================================================
# Slot Store Errors
# ============================================================================

class SlotNotFoundError(BookingSystemError):
    """Raised when a referenced schedule slot does not exist."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, slot_ref: Any, **kwargs):
        super().__init__(
            message=f"Schedule slot not found: {slot_ref}",
            context={"slot_ref": slot_ref, **kwargs},
            recoverable=True
        )
        self.slot_ref = slot_ref


class SlotUnavailableError(BookingSystemError):
    """Raised when a slot is no longer available at commit time."""

    kind = ErrorKind.CONFLICT

    def __init__(self, slot_ref: Any, status: Optional[str] = None, **kwargs):
        super().__init__(
            message=f"Schedule slot {slot_ref} is not available (status={status})",
            context={"slot_ref": slot_ref, "status": status, **kwargs},
            recoverable=True
        )
        self.slot_ref = slot_ref
        self.status = status


class NotBookedError(BookingSystemError):
    """Raised when releasing a slot that is not currently booked."""

    kind = ErrorKind.CONFLICT

    def __init__(self, slot_ref: Any, status: Optional[str] = None, **kwargs):
        super().__init__(
            message=f"Schedule slot {slot_ref} is not booked (status={status})",
            context={"slot_ref": slot_ref, "status": status, **kwargs},
            recoverable=True
        )
        self.slot_ref = slot_ref
        self.status = status


# ============================================================================
# Dialogue State Errors
# ============================================================================

class IncompleteDraftError(BookingSystemError):
    """Raised when confirmation is attempted with required draft fields missing."""

    kind = ErrorKind.STATE

    def __init__(self, missing_fields: list, **kwargs):
        super().__init__(
            message=f"Booking draft incomplete, missing: {missing_fields}",
            context={"missing_fields": missing_fields, **kwargs},
            recoverable=False
        )
        self.missing_fields = missing_fields


# ============================================================================
# Technical Errors
# ============================================================================

class DatabaseError(BookingSystemError):
    """
    Raised when slot store operations fail.

    Examples:
    - Connection failure
    - Query timeout
    - Constraint violation outside the guarded updates
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None,
        **kwargs
    ):
        context = {
            "operation": operation,
            "original_error": str(original_error) if original_error else None,
            **kwargs
        }
        super().__init__(message, context=context, recoverable=False)
        self.operation = operation
        self.original_error = original_error


class InvalidRequestError(BookingSystemError):
    """Raised when the platform payload cannot be interpreted."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, context=kwargs, recoverable=False)
