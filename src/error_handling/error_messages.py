"""
User-facing error messages for the clinic booking dialogue.

Messages are written in Portuguese, the language the clinic's patients talk
to the assistant in. Technical detail stays in the logs; only the short
reason from this module reaches the fulfillment text.
"""
from datetime import date, time, datetime
from typing import Optional, Union

from .exceptions import (
    BookingSystemError,
    BookingValidationError,
    InvalidSelectionError,
    SlotNotFoundError,
    SlotUnavailableError,
    NotBookedError,
    IncompleteDraftError,
)


GENERIC_APOLOGY = "Desculpe, houve um erro ao processar sua solicitação."
NOT_UNDERSTOOD = "Não entendi sua solicitação."
INCOMPLETE_DRAFT = "Dados incompletos para confirmar o agendamento. Por favor, comece novamente."


def format_time_short(value: Optional[Union[time, str]]) -> str:
    """
    Format a slot time as HH:MM.

    Accepts time objects or the platform's "HH:MM:SS" strings.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        try:
            value = time.fromisoformat(value)
        except ValueError:
            return value
    return value.strftime("%H:%M")


def format_date_br(value: Optional[Union[date, datetime, str]]) -> str:
    """Format a date as DD/MM/YYYY."""
    if value is None:
        return ""
    if isinstance(value, str):
        try:
            value = date.fromisoformat(value[:10])
        except ValueError:
            return value
    return value.strftime("%d/%m/%Y")


def get_error_message(error: Exception) -> str:
    """
    Get the short user-facing reason for an error.

    Args:
        error: Exception that occurred

    Returns:
        Portuguese sentence fragment describing the failure
    """
    if isinstance(error, SlotUnavailableError):
        return "Horário não está mais disponível"
    if isinstance(error, NotBookedError):
        return "Agendamento não está marcado"
    if isinstance(error, SlotNotFoundError):
        return "Agendamento não encontrado"
    if isinstance(error, InvalidSelectionError):
        return "Opção inválida"
    if isinstance(error, IncompleteDraftError):
        return INCOMPLETE_DRAFT
    if isinstance(error, BookingValidationError):
        return error.user_message
    if isinstance(error, BookingSystemError) and error.user_message != error.message:
        return error.user_message
    return "erro interno"


def booking_failed_message(error: Exception) -> str:
    """Reply for a rejected reservation; the dialogue stays at confirmation."""
    return (
        f"Desculpe, houve um erro ao confirmar o agendamento: {get_error_message(error)}. "
        "Por favor, tente novamente."
    )


def cancellation_failed_message(error: Exception) -> str:
    """Reply for a rejected release."""
    return f"Erro ao cancelar o agendamento: {get_error_message(error)}. Tente novamente."
