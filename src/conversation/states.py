"""
Intent and dialogue state definitions for the clinic booking flow.
"""

from enum import Enum
from typing import Optional


class Intent(str, Enum):
    """
    Intents the webhook fulfills, keyed by the platform's display name.

    Any other display name, including the platform's fallback intent,
    maps to UNKNOWN.
    """

    LIST_DOCTORS = "Listar medicos"
    LIST_SCHEDULES = "Listar horarios"
    INFORM_NAME = "Informar nome"
    INFORM_PHONE = "Informar celular"
    CONFIRM_BOOKING = "Confirmar agendamento"
    CONFIRM_CANCELLATION = "Confirmar cancelamento"
    UNKNOWN = "Default Fallback Intent"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_display_name(cls, display_name: Optional[str]) -> "Intent":
        if not display_name:
            return cls.UNKNOWN
        try:
            return cls(display_name.strip())
        except ValueError:
            return cls.UNKNOWN


class BookingState(str, Enum):
    """
    States of the booking dialogue.

    The dialogue flows linearly:
    idle -> awaiting_schedule_choice -> awaiting_name -> awaiting_phone
    -> awaiting_confirmation -> confirmed

    Cancellation is reachable from any state.
    """

    IDLE = "idle"
    AWAITING_SCHEDULE_CHOICE = "awaiting_schedule_choice"
    AWAITING_NAME = "awaiting_name"
    AWAITING_PHONE = "awaiting_phone"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"

    def __str__(self) -> str:
        return self.value

    @property
    def is_terminal(self) -> bool:
        return self in (BookingState.CONFIRMED, BookingState.CANCELLED)

    @property
    def context_name(self) -> Optional[str]:
        """Logical name of the platform context that marks this state."""
        return STAGE_CONTEXTS.get(self)


# Platform contexts mirroring each waiting state
STAGE_CONTEXTS = {
    BookingState.AWAITING_SCHEDULE_CHOICE: "awaiting-schedule",
    BookingState.AWAITING_NAME: "awaiting-name",
    BookingState.AWAITING_PHONE: "awaiting-phone",
    BookingState.AWAITING_CONFIRMATION: "awaiting-confirmation",
}

# Long-lived mirror of the full draft
BOOKING_DATA_CONTEXT = "booking-data"

# Lifespans (in turns) of emitted contexts
STAGE_LIFESPAN = 3
CONFIRMATION_LIFESPAN = 5
BOOKING_DATA_LIFESPAN = 10
