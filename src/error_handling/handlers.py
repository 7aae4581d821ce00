"""
Centralized error handling utilities for the clinic booking webhook.

This module provides:
- Retry of transient slot store failures
- Severity-aware error logging for dialogue turns
"""
from typing import Optional, Any, Dict

from loguru import logger
from sqlalchemy.exc import OperationalError, DisconnectionError
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from .exceptions import BookingSystemError, ErrorKind
from .logging_config import log_error_with_context


def _log_retry(retry_state) -> None:
    logger.warning(
        f"Slot store call {retry_state.fn.__name__} failed "
        f"(attempt {retry_state.attempt_number}): {retry_state.outcome.exception()}. Retrying..."
    )


def retry_on_db_error(max_attempts: int = 3, max_wait: float = 2.0):
    """
    Decorator retrying read-only slot store calls on connection errors.

    Guarded updates are not wrapped: a retried update could be applied
    twice if the first commit reached the database.

    Args:
        max_attempts: Total attempts including the first call
        max_wait: Upper bound for the exponential backoff (seconds)
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=0.1, max=max_wait),
        retry=retry_if_exception_type((OperationalError, DisconnectionError)),
        before_sleep=_log_retry,
        reraise=True,
    )


def log_error(
    error: Exception,
    session_id: Optional[str] = None,
    state: Optional[str] = None,
    additional_context: Optional[Dict[str, Any]] = None
) -> None:
    """
    Log an error raised or returned while handling a turn.

    User-caused failures (validation, not found, conflict, state) are
    logged as warnings without a stack trace; anything else is an error.

    Args:
        error: Exception that occurred
        session_id: Platform session identifier
        state: Dialogue state when the error happened
        additional_context: Extra context for the log record
    """
    context = {
        "session_id": session_id,
        "conversation_state": state,
        **(additional_context or {}),
    }

    if isinstance(error, BookingSystemError):
        context["error_kind"] = error.kind.value
        context["recoverable"] = error.recoverable
        if error.kind != ErrorKind.INTERNAL:
            log_error_with_context(error, context, severity="WARNING")
            return

    log_error_with_context(error, context, severity="ERROR")
